import os
import secrets
import platform
from dotenv import load_dotenv

# Load environment variables from .env file(s)
# 1) Project root .env
load_dotenv()

basedir = os.path.abspath(os.path.dirname(__file__))


def ensure_data_directory(data_dir=None):
    """Ensure the data directory exists with sane permissions (cross-platform)."""
    data_dir = data_dir or os.environ.get('DATA_DIR') or os.path.join(basedir, 'data')
    os.makedirs(data_dir, exist_ok=True)

    if platform.system() != "Windows":
        try:
            os.chmod(data_dir, 0o755)
        except (OSError, PermissionError):
            # Ignore permission errors (common on mounted volumes)
            pass

    return data_dir


# Initialize data directory
data_dir = ensure_data_directory()

# 2) Overlay data/.env so settings saved at runtime persist via the mounted volume
data_env_path = os.path.join(data_dir, '.env')
if os.path.exists(data_env_path):
    load_dotenv(dotenv_path=data_env_path, override=True)


def _env_float(name, default):
    try:
        return float(os.environ.get(name, default))
    except (TypeError, ValueError):
        return float(default)


class Config:
    # Expose data directory path for other modules
    DATA_DIR = data_dir

    # Security
    SECRET_KEY = os.environ.get('SECRET_KEY')
    if not SECRET_KEY:
        # A per-process key is fine here: the API is stateless and uses no sessions
        SECRET_KEY = secrets.token_hex(32)

    # Optional bearer token protecting /api/ routes (single-user deployments)
    API_TOKEN = os.environ.get('API_TOKEN') or None

    # Kuzu Database Configuration
    KUZU_DB_PATH = os.environ.get('KUZU_DB_PATH') or os.path.join(data_dir, 'kuzu')

    # Application settings
    SITE_NAME = os.environ.get('SITE_NAME', 'KetchupSoon')
    TIMEZONE = os.environ.get('TIMEZONE') or 'UTC'
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

    # Remote event backend (Supabase REST)
    SUPABASE_URL = os.environ.get('SUPABASE_URL') or None
    SUPABASE_KEY = os.environ.get('SUPABASE_KEY') or None
    SUPABASE_TIMEOUT = _env_float('SUPABASE_TIMEOUT', 10)

    # Operation coordinator
    COORDINATOR_MIN_INTERVAL = _env_float('COORDINATOR_MIN_INTERVAL', 2.0)
    COORDINATOR_DELAY = _env_float('COORDINATOR_DELAY', 0.1)
    COORDINATOR_BACKGROUND = os.environ.get('COORDINATOR_BACKGROUND', 'true').lower() in ('1', 'true', 'on', 'yes')

    TESTING = False
    JSON_SORT_KEYS = False


class TestingConfig(Config):
    """Configuration used by the test-suite; paths are overridden per test."""
    TESTING = True
    API_TOKEN = None
    SUPABASE_URL = None
    SUPABASE_KEY = None
    COORDINATOR_DELAY = 0.0
    COORDINATOR_BACKGROUND = False
