"""The party (squad) blueprint."""

from flask import Blueprint

bp = Blueprint("party", __name__, url_prefix="/party")

from . import routes  # noqa: E402

__all__ = ["routes"]
