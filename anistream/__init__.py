from .utils.logging import Logger, get_logger
from .utils.version import get_pyproject_version

__author__ = "AniStream contributors"
__license__ = "MIT"
__version__ = get_pyproject_version()

ANISTREAM_HEADER = f"AniStream v{__version__}"

log: Logger = get_logger()
