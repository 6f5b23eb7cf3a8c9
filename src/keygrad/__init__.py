"""
keygrad: a reverse-mode automatic differentiation engine over opaque payloads.
"""

from .domain import *  # noqa: F401,F403
from .infrastructure import *  # noqa: F401,F403

from .domain import __all__ as _domain_all
from .infrastructure import __all__ as _infrastructure_all

__all__ = list(_domain_all) + list(_infrastructure_all)
__version__ = "0.1.0a0"
