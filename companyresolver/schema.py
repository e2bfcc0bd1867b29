from dataclasses import asdict, dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional
from urllib.parse import urlparse

CONFIDENCE_LEVELS = ("high", "medium", "low")

OPTIONAL_STR_FIELDS = ["company_name", "company_url"]


@dataclass(frozen=True)
class CompanyQuery:
    company_name: str = ""
    company_url: str = ""


@dataclass(frozen=True)
class NormalizedCompany:
    display_name: str
    search_name: str
    tokens: FrozenSet[str]
    preferred_url: Optional[str]
    domain_token: str


@dataclass
class CandidateMention:
    url: str
    context: str = ""
    rating_hint: Optional[float] = None
    reviews_hint: Optional[int] = None
    work_life_balance: Optional[float] = None
    career_opportunities: Optional[float] = None
    compensation: Optional[float] = None


@dataclass
class ScoredCandidate(CandidateMention):
    score: float = 0
    contexts: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class PlatformRef:
    url: str
    company_id: Optional[str]
    company_name: str
    score: float
    rating_hint: Optional[float] = None
    reviews_hint: Optional[int] = None


@dataclass
class CompanyIdentity:
    input_company_name: str
    normalized_company_name: str
    canonical_company_name: str
    confidence: str
    glassdoor: Optional[PlatformRef] = None
    indeed: Optional[PlatformRef] = None
    preferred_company_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GlassdoorBaseline:
    source_url: Optional[str]
    glassdoor_rating: Optional[float]
    glassdoor_reviews: Optional[int]
    work_life_balance: Optional[float]
    career_opportunities: Optional[float]
    compensation: Optional[float]
    confidence: str
    evidence: Optional[str]
    captured_at: str
    platform: str = "Glassdoor"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CareersAssessment:
    score: int
    insight: str
    source_type: str
    source_url: Optional[str]
    confidence: str
    fallback_used: bool
    attempted_urls: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def _valid_url(v: str) -> bool:
    candidate = v if "://" in v else f"https://{v}"
    try:
        p = urlparse(candidate)
        return bool(p.scheme and p.netloc and "." in p.netloc)
    except ValueError:
        return False


def validate_query(data: Dict[str, Any]) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.

    A query needs a company name, a company URL, or both.
    """
    errors: List[str] = []

    for f in OPTIONAL_STR_FIELDS:
        if f in data and data[f] is not None and not isinstance(data[f], str):
            errors.append(f"Field '{f}' must be a string if provided")

    if not (_is_non_empty_str(data.get("company_name")) or _is_non_empty_str(data.get("company_url"))):
        errors.append("One of 'company_name' or 'company_url' is required")

    if _is_non_empty_str(data.get("company_url")) and not _valid_url(data["company_url"].strip()):
        errors.append("Field 'company_url' must be a valid URL or domain")

    return errors
