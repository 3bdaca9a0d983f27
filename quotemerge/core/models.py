"""
Core data models for QuoteMerge.

The Quote side mirrors the JSON record a quoting front-end sends (camelCase
keys are accepted by ``from_dict``). The PDF side describes what the token
locator finds and what a merge call returns.
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from enum import Enum, auto
from typing import List, Dict, Optional, Any, Tuple
from datetime import datetime

from quotemerge.core.exceptions import ConfigurationError


class MergeStrategy(Enum):
    """How a template is turned into an agreement."""
    GENERIC_OVERLAY = auto()   # overlay page 0, copy the rest verbatim
    PAGE_REPLACE = auto()      # repaint one target page of a multi-page template


class OverlayMode(Enum):
    """Whether the overlay patches an existing page or paints a new one."""
    PATCH = auto()
    NEW_PAGE = auto()


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present, non-None value among ``keys``."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _number(data: Dict[str, Any], *keys: str, kind: type = float, default: Any = 0) -> Any:
    """
    Numeric field from a front-end dict. Blank strings count as missing.

    Raises:
        ConfigurationError: The value is present but not a number
    """
    value = _pick(data, *keys)
    if isinstance(value, str):
        value = value.strip().replace(",", "")
    if value in (None, ""):
        return default
    try:
        return kind(float(value)) if kind is int else kind(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise ConfigurationError(
            f"Quote field {keys[-1]!r} is not a number: {value!r}",
            config_key=keys[-1],
            invalid_value=value,
        ) from e


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    text = str(value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as e:
        raise ConfigurationError(f"Quote date is not ISO 8601: {value!r}", config_key="createdAt",
                                 invalid_value=value) from e


@dataclass(frozen=True)
class Configuration:
    """Migration configuration collected for a quote."""
    migration_type: str = ""
    number_of_users: int = 0
    data_size_gb: float = 0.0
    number_of_instances: int = 0
    instance_type: str = ""
    duration_months: int = 0
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Configuration:
        return cls(
            migration_type=str(_pick(data, "migration_type", "migrationType", default="")),
            number_of_users=_number(data, "number_of_users", "numberOfUsers", kind=int),
            data_size_gb=_number(data, "data_size_gb", "dataSizeGB", default=0.0),
            number_of_instances=_number(data, "number_of_instances", "numberOfInstances", kind=int),
            instance_type=str(_pick(data, "instance_type", "instanceType", default="")),
            duration_months=_number(data, "duration_months", "duration", kind=int),
            start_date=_pick(data, "start_date", "startDate"),
            end_date=_pick(data, "end_date", "endDate"),
        )


@dataclass(frozen=True)
class Calculation:
    """Cost breakdown computed upstream; the engine only formats it."""
    user_cost: float = 0.0
    data_cost: float = 0.0
    migration_cost: float = 0.0
    instance_cost: float = 0.0
    total_cost: float = 0.0

    @property
    def service_cost(self) -> float:
        """Managed-migration service line: users + data + instances."""
        return self.user_cost + self.data_cost + self.instance_cost

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Calculation:
        return cls(
            user_cost=_number(data, "user_cost", "userCost", default=0.0),
            data_cost=_number(data, "data_cost", "dataCost", default=0.0),
            migration_cost=_number(data, "migration_cost", "migrationCost", default=0.0),
            instance_cost=_number(data, "instance_cost", "instanceCost", default=0.0),
            total_cost=_number(data, "total_cost", "totalCost", default=0.0),
        )


@dataclass(frozen=True)
class PricingTier:
    name: str = ""
    features: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PricingTier:
        return cls(
            name=str(_pick(data, "name", default="")),
            features=tuple(str(f) for f in _pick(data, "features", default=())),
        )


@dataclass(frozen=True)
class DealData:
    """CRM deal metadata attached to a quote."""
    deal_id: str = ""
    deal_name: str = ""
    amount: Optional[float] = None
    stage: str = ""
    company: str = ""
    contact_name: str = ""
    contact_email: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> DealData:
        amount = _number(data, "amount", default=None)
        return cls(
            deal_id=str(_pick(data, "deal_id", "dealId", default="")),
            deal_name=str(_pick(data, "deal_name", "dealName", default="")),
            amount=amount,
            stage=str(_pick(data, "stage", default="")),
            company=str(_pick(data, "company", default="")),
            contact_name=str(_pick(data, "contact_name", "contactName", default="")),
            contact_email=str(_pick(data, "contact_email", "contactEmail", default="")),
        )


@dataclass(frozen=True)
class SignatureBlock:
    """One party's signature fields."""
    signer_name: str = ""
    title: str = ""
    date: str = ""
    style: int = 0              # index into the signature font styles
    signature_text: str = ""    # typed e-signature; signer name when empty

    @property
    def is_empty(self) -> bool:
        return not (self.signer_name or self.title or self.date or self.signature_text)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SignatureBlock:
        return cls(
            signer_name=str(_pick(data, "signer_name", "signerName", "name", default="")),
            title=str(_pick(data, "title", default="")),
            date=str(_pick(data, "date", default="")),
            style=int(_pick(data, "style", "selectedFontIndex", default=0)),
            signature_text=str(_pick(data, "signature_text", "eSignature", "signature", default="")),
        )


@dataclass(frozen=True)
class Quote:
    """
    Immutable quote record merged into a template.

    Owned by the caller; the engine only reads it.
    """
    client_name: str = ""
    client_email: str = ""
    company: str = ""
    configuration: Configuration = field(default_factory=Configuration)
    calculation: Calculation = field(default_factory=Calculation)
    selected_tier: PricingTier = field(default_factory=PricingTier)
    deal: Optional[DealData] = None
    vendor_signature: Optional[SignatureBlock] = None
    client_signature: Optional[SignatureBlock] = None
    quote_id: str = ""
    created_at: Optional[datetime] = None

    @property
    def display_company(self) -> str:
        """Company name, falling back to the client name."""
        return self.company or self.client_name

    @property
    def has_signatures(self) -> bool:
        return any(
            block is not None and not block.is_empty
            for block in (self.vendor_signature, self.client_signature)
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        data["selected_tier"]["features"] = list(self.selected_tier.features)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Quote:
        """
        Create from a JSON-shaped dict (snake_case or camelCase keys).

        Configuration and cost keys may sit at the top level when the
        ``configuration`` / ``calculation`` sections are absent.
        """
        deal = _pick(data, "deal", "dealData")
        vendor = _pick(data, "vendor_signature", "vendorSignature")
        client = _pick(data, "client_signature", "clientSignature")
        return cls(
            client_name=str(_pick(data, "client_name", "clientName", default="")),
            client_email=str(_pick(data, "client_email", "clientEmail", default="")),
            company=str(_pick(data, "company", default="")),
            configuration=Configuration.from_dict(_pick(data, "configuration", default=data)),
            calculation=Calculation.from_dict(_pick(data, "calculation", default=data)),
            selected_tier=PricingTier.from_dict(_pick(data, "selected_tier", "selectedTier", default={})),
            deal=DealData.from_dict(deal) if deal else None,
            vendor_signature=SignatureBlock.from_dict(vendor) if vendor else None,
            client_signature=SignatureBlock.from_dict(client) if client else None,
            quote_id=str(_pick(data, "quote_id", "id", default="")),
            created_at=_parse_datetime(_pick(data, "created_at", "createdAt")),
        )


@dataclass(frozen=True)
class Branding:
    """Vendor identity printed on generated agreements."""
    vendor_name: str = "CloudFuze"
    legal_name: str = "CloudFuze, Inc."
    product_name: str = "X-Change"
    migration_target: str = "Teams"
    address_lines: Tuple[str, ...] = ("2500 Regency Parkway, Cary, NC 27518",)
    website: str = "https://www.cloudfuze.com/"
    phone: str = "+1 252-558-9019"
    sales_email: str = "sales@cloudfuze.com"
    support_email: str = "support@cloudfuze.com"
    partner_name: str = "Microsoft"
    partner_label: str = "Partner"
    partner_tier: str = "Gold Cloud Productivity"
    classification: str = "Classification: Confidential"
    title_template: str = "{vendor} Purchase Agreement for {company}"
    intro_template: str = (
        "This agreement provides {company} with pricing for use of the "
        "{vendor}'s {product} Enterprise Data Migration services."
    )

    def title(self, company: str) -> str:
        return self.title_template.format(vendor=self.vendor_name, company=company,
                                          product=self.product_name)

    def intro(self, company: str) -> str:
        return self.intro_template.format(vendor=self.vendor_name, company=company,
                                          product=self.product_name)

    @property
    def from_lines(self) -> Tuple[str, ...]:
        return (self.legal_name,) + tuple(self.address_lines) + (self.sales_email,)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["address_lines"] = list(self.address_lines)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Branding:
        data = dict(data)
        if "address_lines" in data:
            data["address_lines"] = tuple(data["address_lines"])
        return cls(**data)


@dataclass(frozen=True)
class BoundingBox:
    """Rectangle in PDF points, top-left origin (PyMuPDF page space)."""
    x0: float
    y0: float
    x1: float
    y1: float

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.y1 - self.y0

    @property
    def area(self) -> float:
        return max(self.width, 0.0) * max(self.height, 0.0)

    def contains(self, other: BoundingBox) -> bool:
        """Check if this box contains another box."""
        return (self.x0 <= other.x0 and self.y0 <= other.y0 and
                self.x1 >= other.x1 and self.y1 >= other.y1)

    def intersects(self, other: BoundingBox) -> bool:
        return not (self.x1 <= other.x0 or self.x0 >= other.x1 or
                    self.y1 <= other.y0 or self.y0 >= other.y1)

    def expand(self, margin: float) -> BoundingBox:
        return BoundingBox(self.x0 - margin, self.y0 - margin,
                           self.x1 + margin, self.y1 + margin)

    def union(self, other: BoundingBox) -> BoundingBox:
        return BoundingBox(min(self.x0, other.x0), min(self.y0, other.y0),
                           max(self.x1, other.x1), max(self.y1, other.y1))

    def to_tuple(self) -> Tuple[float, float, float, float]:
        return (self.x0, self.y0, self.x1, self.y1)

    @classmethod
    def from_sequence(cls, values) -> BoundingBox:
        x0, y0, x1, y1 = values
        return cls(float(x0), float(y0), float(x1), float(y1))


@dataclass(frozen=True)
class TokenMatch:
    """A placeholder found in a page's positioned text."""
    page_index: int
    token: str                  # canonical placeholder key
    matched_text: str           # literal alias that matched
    x: float                    # baseline origin of the first glyph
    y: float
    bbox: BoundingBox
    font_size: float = 11.0
    bold: bool = False
    italic: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["bbox"] = list(self.bbox.to_tuple())
        return data


@dataclass(frozen=True)
class TokenRequirement:
    """A placeholder that a page is known to need, with its fallback text."""
    page_index: int
    key: str = "{{Company Name}}"
    fallback_format: str = "For {value}"


@dataclass
class FallbackOutcome:
    """Record of a degraded fixed-position substitution."""
    page_index: int
    key: str
    candidate_index: int
    rect: BoundingBox
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page_index": self.page_index,
            "key": self.key,
            "candidate_index": self.candidate_index,
            "rect": list(self.rect.to_tuple()),
            "text": self.text,
        }


@dataclass
class MergeResult:
    """Output of one merge call: the bytes plus what happened on the way."""
    pdf_bytes: bytes
    strategy: MergeStrategy
    page_count: int
    target_page: int = 0
    degraded: bool = False
    degraded_pages: List[int] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    token_matches: List[TokenMatch] = field(default_factory=list)
    replaced_tokens: int = 0
    fallbacks: List[FallbackOutcome] = field(default_factory=list)
    sanitization_loss: int = 0
    touched_pages: List[int] = field(default_factory=list)
    processing_time: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Metadata only; the PDF bytes are left out."""
        return {
            "strategy": self.strategy.name,
            "page_count": self.page_count,
            "target_page": self.target_page,
            "degraded": self.degraded,
            "degraded_pages": list(self.degraded_pages),
            "warnings": list(self.warnings),
            "token_matches": [m.to_dict() for m in self.token_matches],
            "replaced_tokens": self.replaced_tokens,
            "fallbacks": [f.to_dict() for f in self.fallbacks],
            "sanitization_loss": self.sanitization_loss,
            "touched_pages": list(self.touched_pages),
            "processing_time": self.processing_time,
            "size_bytes": len(self.pdf_bytes),
        }

    def get_summary(self) -> Dict[str, Any]:
        """Get summary statistics."""
        return {
            'strategy': self.strategy.name,
            'pages': self.page_count,
            'degraded': self.degraded,
            'tokens_replaced': self.replaced_tokens,
            'fallbacks': len(self.fallbacks),
            'chars_dropped': self.sanitization_loss,
            'duration': self.processing_time,
        }
