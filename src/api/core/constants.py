API_VERSION_HEADER = "X-Marketplace-Version"

# JWT Configuration
JWT_ALGORITHM = "HS256"

# Authentication endpoints configuration
SKIP_AUTH_PATHS = {
    "/openapi.json",
    "/docs",
    "/redoc",
    "/health",
    "/health/liveness",
    "/",
    "/stripe/webhook",
}

# Pagination
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Execution correlation ids look like exec_<32 hex chars>
EXECUTION_CORRELATION_PREFIX = "exec_"

EXECUTE_RATE_LIMIT_SCOPE = "execute"
