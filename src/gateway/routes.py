"""API paths used by the session layer itself. Resource routes live with their screens."""

LOGIN = "/auth/login"
CHANGE_PASSWORD = "/auth/change-password"
REFRESH_TOKEN = "/refresh-token"

# Where a torn-down session is sent
ROOT_ROUTE = "/"
