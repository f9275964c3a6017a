import logging
import sys

# 1. Console handler shared by every logger without its own handler
console_handler = logging.StreamHandler(sys.stdout)
console_handler.setLevel(logging.DEBUG)
formatter = logging.Formatter(
    "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
console_handler.setFormatter(formatter)

# 2. Package loggers (using __name__) inherit from the root logger.
# EM iteration traces are emitted at DEBUG; the root stays at INFO so a
# long fit does not flood the console unless asked to.
root_logger = logging.getLogger()
root_logger.setLevel(logging.INFO)
root_logger.addHandler(console_handler)

# 3. Suppress chatty library loggers
logging.getLogger("matplotlib").setLevel(logging.WARNING)
logging.getLogger("PIL").setLevel(logging.WARNING)
