__path__ = __import__("pkgutil").extend_path(__path__, __name__)  # NOQA: F-821
__title__ = 'helmsman'
__author__ = 'Helmsman Developers'
__license__ = 'MIT'
# Placeholder, modified by dynamic-versioning.
__version__ = "0.0.0"

__import__("logging").getLogger(__name__).addHandler(__import__("logging").NullHandler())

from .arguments import *
from .commands import *
from .configuration import *
from .dispatcher import *
from .exitcodes import *
from .faults import *
from .hooks import *
from .similarity import *
from .validation import *

VersionInfo = __import__("collections").namedtuple("VersionInfo", (
    "major",
    "minor",
    "micro",
    "releaselevel",
    "serial",
    "metadata"
))

# Placeholder, modified by dynamic-versioning.
version_info = VersionInfo(0, 0, 0, "final", 0, "")

__all__ = (
    "__path__",
    "__title__",
    "__author__",
    "__license__",
    "__version__",
    "version_info"
)

# Load the exposed API of the arguments
__all__ += arguments.__all__  # type: ignore[attr-defined]
# Load the exposed API of the commands
__all__ += commands.__all__  # type: ignore[attr-defined]
# Load the exposed API of the configuration
__all__ += configuration.__all__  # type: ignore[attr-defined]
# Load the exposed API of the dispatcher
__all__ += dispatcher.__all__  # type: ignore[attr-defined]
# Load the exposed API of the exit codes
__all__ += exitcodes.__all__  # type: ignore[attr-defined]
# Load the exposed API of the faults
__all__ += faults.__all__  # type: ignore[attr-defined]
# Load the exposed API of the hooks
__all__ += hooks.__all__  # type: ignore[attr-defined]
# Load the exposed API of the similarity matcher
__all__ += similarity.__all__  # type: ignore[attr-defined]
# Load the exposed API of the validation rules
__all__ += validation.__all__  # type: ignore[attr-defined]
