"""
Cross-origin access for the booking page and the waiting-room display,
which are served from their own front-end origin.
"""
from flask_cors import CORS

# Receipts and medical reports are downloaded by name
EXPOSED_HEADERS = ["Content-Type", "Content-Disposition"]


def allowed_origins(value):
    """Comma-separated CORS_ORIGINS setting as a list; '*' stays a wildcard."""
    if isinstance(value, (list, tuple)):
        origins = [str(o).strip() for o in value]
    else:
        origins = [o.strip() for o in (value or "*").split(",")]
    origins = [o for o in origins if o]
    if not origins or "*" in origins:
        return "*"
    return origins


def init_cors(app):
    origins = allowed_origins(app.config.get("CORS_ORIGINS"))

    CORS(app,
         resources={r"/api/*": {"origins": origins}, r"/health": {"origins": origins}},
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
         allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
         expose_headers=EXPOSED_HEADERS,
         # Browsers refuse credentialed requests against a wildcard origin
         supports_credentials=origins != "*",
         max_age=86400)

    app.logger.info("CORS enabled for %s", "all origins" if origins == "*" else ", ".join(origins))
