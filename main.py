import os
import sys
import logging

# 1. CONFIGURATION (Before imports to ensure they take effect)
# -----------------------------------------------------------
# Silence TensorFlow Lite / glog chatter from MediaPipe
os.environ.setdefault("TF_CPP_MIN_LOG_LEVEL", "2")
os.environ.setdefault("GLOG_minloglevel", "2")

# 2. GLOBAL LOGGING SETUP
# -----------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)

# Silence specific noisy loggers
logging.getLogger("absl").setLevel(logging.ERROR)
logging.getLogger("matplotlib").setLevel(logging.ERROR)

# 3. IMPORT & EXECUTION
# -----------------------------------------------------------
from facesync.app.tracking_app import TrackingApp  # noqa: E402
from facesync.core.config import load_tracking_config  # noqa: E402
from facesync.utils.load_config import resolve_config_path  # noqa: E402


def main() -> int:
    config_path = resolve_config_path()
    log = logging.getLogger(__name__)
    log.info(f"Loading config from {config_path}")
    config = load_tracking_config(config_path)
    return TrackingApp(config).run()


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception as e:
        logging.critical(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)
