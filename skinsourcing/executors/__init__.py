"""Provider executors."""

from skinsourcing.executors.base import run_provider_with_status

__all__ = [
    "run_provider_with_status",
]
