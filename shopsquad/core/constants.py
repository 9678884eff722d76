"""Global constants for the shopsquad application."""

# Collection names
USERS_COLLECTION = "users"
PARTIES_COLLECTION = "parties"
USER_PARTIES_COLLECTION = "user_parties"
NOTIFICATIONS_COLLECTION = "notifications"
CATALOG_COLLECTION = "catalog"
CATALOG_DOCUMENT = "products"
PAYMENT_RECONCILIATION_COLLECTION = "payment_reconciliation"

# Party statuses, in lifecycle order
STATUS_UPCOMING = "upcoming"
STATUS_IN_PAYMENT = "in_payment"
STATUS_IN_PREORDER = "in_preorder"
STATUS_TRYING = "trying"
STATUS_FINALIZING = "finalizing"
STATUS_COMPLETED = "completed"
PARTY_STATUSES = (
    STATUS_UPCOMING,
    STATUS_IN_PAYMENT,
    STATUS_IN_PREORDER,
    STATUS_TRYING,
    STATUS_FINALIZING,
    STATUS_COMPLETED,
)

# Product statuses used while trying items on
PRODUCT_PENDING = "pending"
PRODUCT_KEPT = "kept"
PRODUCT_RETURNED = "returned"

# Payments
PAYMENT_COMPLETED = "completed"
PAYMENT_TYPE_PREORDER = "preorder"
PAYMENT_FAILED_MESSAGE = "Payment failed. Please try again."
DEFAULT_CURRENCY = "EUR"

# Reactions
REACTION_LIKE = "like"
REACTION_DISLIKE = "dislike"
REACTION_TYPES = (REACTION_LIKE, REACTION_DISLIKE)

# Notification kinds
NOTIFY_INVITE = "invite"
NOTIFY_PAYMENT_REQUEST = "payment_request"
NOTIFY_PAYMENT_RECEIVED = "payment_received"
NOTIFY_SQUAD_CLOSED = "squad_closed"
NOTIFY_SQUAD_REOPENED = "squad_reopened"
NOTIFY_SQUAD_COMPLETED = "squad_completed"
NOTIFY_REOPEN_REQUEST = "reopen_request"
NOTIFICATION_KINDS = (
    NOTIFY_INVITE,
    NOTIFY_PAYMENT_REQUEST,
    NOTIFY_PAYMENT_RECEIVED,
    NOTIFY_SQUAD_CLOSED,
    NOTIFY_SQUAD_REOPENED,
    NOTIFY_SQUAD_COMPLETED,
    NOTIFY_REOPEN_REQUEST,
)

# Catalog
CATALOG_PAGE_SIZE = 50
DEFAULT_VARIANT = "Default"
DEFAULT_SIZE = "One Size"

# Users
ANONYMOUS_NAME = "Anonymous"
AVATAR_URL_TEMPLATE = "https://ui-avatars.com/api/?name={name}"

# Email-related constants
SMTP_AUTH_ERROR_CODE = 534
