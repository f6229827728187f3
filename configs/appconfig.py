# Application Configuration
# Centralized configuration for the backend and the kinematics defaults
from pathlib import Path

class AppConfig:
    """Centralized application configuration"""

    USER_DIR = Path(__file__).parent.parent / "user"
    # Port Configuration
    BACKEND_PORT = 8021

    # URLs (derived from ports)
    BACKEND_URL = f"http://localhost:{BACKEND_PORT}"

    # API Configuration
    API_PREFIX = "/api"

    # Kinematics / fabrication defaults
    TRACE_STEPS = 100            # samples per full crank revolution
    SNAP_RADIUS = 0.15           # point-snap radius of the editor, in linkage units
    PASS_THRU_MARGIN = SNAP_RADIUS
    DEFAULT_ROTARY_LENGTH = 1.0

    @classmethod
    def get_backend_url(cls):
        return cls.BACKEND_URL

    @classmethod
    def get_api_base_url(cls):
        return f"{cls.BACKEND_URL}{cls.API_PREFIX}"

# For backward compatibility and easy imports
BACKEND_PORT = AppConfig.BACKEND_PORT
BACKEND_URL = AppConfig.BACKEND_URL
USER_DIR = AppConfig.USER_DIR
TRACE_STEPS = AppConfig.TRACE_STEPS
SNAP_RADIUS = AppConfig.SNAP_RADIUS
PASS_THRU_MARGIN = AppConfig.PASS_THRU_MARGIN
DEFAULT_ROTARY_LENGTH = AppConfig.DEFAULT_ROTARY_LENGTH
