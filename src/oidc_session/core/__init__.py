"""Core module for oidc-session.

Only exports the exception hierarchy. Entities live in entities/.
"""

from .exceptions import *
from .exceptions import __all__
