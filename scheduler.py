import asyncio
import sys

from core.deploy import run_deploy_scheduler
from core.errors import FatalStartupError
from core.logger import get_logger

logger = get_logger("Scheduler")


def main() -> int:
    """Deploy + transfer for every wallet now and then once a day."""
    try:
        asyncio.run(run_deploy_scheduler())
    except FatalStartupError as e:
        logger.error(e.message)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
