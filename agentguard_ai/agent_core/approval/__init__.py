"""Human approval requests and resume tokens."""

from .controller import ApprovalController

__all__ = ["ApprovalController"]
