"""Company identity resolution against public review platforms."""

__version__ = "0.1.0"

from .resolver import resolve_company_identity
from .baseline import scrape_glassdoor_baseline
from .careers import assess_candidate_experience

__all__ = [
    "__version__",
    "resolve_company_identity",
    "scrape_glassdoor_baseline",
    "assess_candidate_experience",
]
