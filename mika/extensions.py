"""Flask extensions initialization."""
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

cors = CORS()

# Storage and enablement come from RATELIMIT_* config keys.
limiter = Limiter(key_func=get_remote_address)
