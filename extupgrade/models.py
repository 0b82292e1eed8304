"""
Data models for extupgrade.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class RunConfig:
    """Configuration for a validation run."""
    extname: str
    from_version: str
    to_version: str
    host: Optional[str] = None
    port: Optional[int] = None
    user: Optional[str] = None
    dbname: Optional[str] = None
    extra_queries: List[str] = field(default_factory=list)
    no_color: bool = False
    quiet: bool = False
