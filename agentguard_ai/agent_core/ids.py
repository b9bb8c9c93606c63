from __future__ import annotations

import uuid


def create_id(prefix: str) -> str:
    """Return a random identifier such as ``run_3f2a...``."""
    return f"{prefix}_{uuid.uuid4().hex}"
