"""leaveflow — leave request tracking with a pending/approved/rejected review lifecycle."""

__version__ = "0.1.0"
