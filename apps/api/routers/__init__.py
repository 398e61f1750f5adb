"""Routers package."""

from . import (
    health,
    auth,
    providers,
    selections,
    sports,
)
