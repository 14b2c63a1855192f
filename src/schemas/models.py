# src/schemas/models.py

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# =========================
# Constants shared by extractors and storage
# =========================

PRICE_PLACEHOLDER = "不明"
MAX_IMAGES = 12
MIN_PLAUSIBLE_YEAR = 1900

PropertyStatus = Literal[
    "considering",  # 検討中
    "exterior_viewed",  # 外観確認済み
    "viewing_scheduled",  # 内見予定
    "viewed",  # 内見済み
    "applying",  # 申込中/手続き中
    "contracted",  # 契約済み
    "excluded",  # 選外/検討除外
    "sold_out",  # 物件なし/掲載終了
]

RatingScore = Literal["good", "bad"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================
# Retrieval hand-off
# ============================================================

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class FetchPolicy(BaseModel):
    """
    Retrieval policy for `src.core.fetch.fetch_document`.

    Listing portals routinely put a human-verification interstitial in front of
    the page. The fetcher waits for it to clear for at most `challenge_wait_s`
    and then proceeds with whatever content it has.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    timeout_s: float = Field(
        60.0,
        gt=0,
        description="Navigation / HTTP timeout in seconds.",
    )
    user_agent: str = Field(
        BROWSER_USER_AGENT,
        description="User-Agent header; portals reject obvious bots.",
    )
    accept_language: str = Field("ja,en;q=0.8", description="Accept-Language header.")
    allow_non_200: bool = Field(
        False,
        description="If False, HTTP status >= 400 counts as a retrieval failure.",
    )
    render_js: bool = Field(
        False,
        description="Render with headless Chromium (Playwright) instead of a plain GET.",
    )
    render_headless: bool = Field(
        True,
        description="Run the browser headless. Headful lets a person clear a challenge by hand.",
    )
    render_wait_until: Literal["load", "domcontentloaded", "networkidle"] = Field(
        "domcontentloaded",
        description="Playwright navigation wait condition.",
    )
    challenge_wait_s: float = Field(
        60.0,
        ge=0,
        description="Upper bound on waiting for a verification challenge to clear.",
    )
    challenge_poll_s: float = Field(
        2.0,
        gt=0,
        description="Polling interval while waiting for a challenge to clear.",
    )
    min_body_text: int = Field(
        1000,
        ge=0,
        description="Visible-text length a page needs before a challenge counts as cleared.",
    )


class ListingDocument(BaseModel):
    """
    Raw content of one fetched listing page.

    Produced by the retrieval collaborator (`src.core.fetch`) or built directly
    in tests. `body_text` is the rendered visible text when the retriever had a
    browser; otherwise the parsers derive it from `html`.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    url: str = Field(..., description="URL the document was requested for.")
    html: str = Field("", description="Raw or rendered HTML. Empty when retrieval failed.")
    title: str | None = Field(None, description="Declared page title, if the retriever read it.")
    body_text: str | None = Field(None, description="Visible body text, if the retriever rendered it.")
    final_url: str | None = Field(None, description="URL after redirects/navigation, if different.")
    challenge_suspected: bool = Field(False, description="True when a verification challenge did not clear in time.")

    @property
    def is_empty(self) -> bool:
        return not self.html.strip() and not (self.body_text or "").strip()


# ============================================================
# Extraction result
# ============================================================


class FeeBundle(BaseModel):
    """Monthly fees in yen. `None` means not determined; 0 may also mean unparsed."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    management: float | None = None
    repair: float | None = None
    parking: float | None = None


FEE_KEYS: tuple[str, ...] = tuple(FeeBundle.model_fields)


class ExtractedFields(BaseModel):
    """
    Immutable snapshot of one extraction pass.

    Only the fields an extractor explicitly set count as determined
    (see `determined()`); everything else means "not found on the page".
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    url: str
    title: str = ""
    price: str = Field(PRICE_PLACEHOLDER, description="Price as displayed by the source, e.g. '3,980万円'.")
    monthly_payment: str | None = Field(None, alias="monthlyPayment")
    images: list[str] = Field(default_factory=list, description="Absolute image URLs, unique, at most 12.")
    station: str | None = None
    station_minute: int | None = Field(None, ge=0, alias="stationMinute")
    year_built: int | None = Field(None, alias="yearBuilt")
    area: float | None = Field(None, ge=0, description="Floor area in square meters.")
    is_freehold: bool = Field(True, alias="isFreehold")
    units: int | None = Field(None, ge=0, description="Total unit count of the building.")
    fees: FeeBundle = Field(default_factory=FeeBundle)
    parking_status: str | None = Field(None, alias="parkingStatus")
    renovated: bool = False

    @field_validator("images")
    @classmethod
    def _absolute_unique_capped(cls, v: list[str]) -> list[str]:
        out: list[str] = []
        for u in v:
            if u and u.startswith("http") and u not in out:
                out.append(u)
            if len(out) >= MAX_IMAGES:
                break
        return out

    @field_validator("year_built")
    @classmethod
    def _plausible_year(cls, v: int | None) -> int | None:
        if v is None:
            return None
        if not (MIN_PLAUSIBLE_YEAR <= v <= datetime.now().year):
            return None
        return v

    def determined(self) -> dict[str, Any]:
        """Field values the extractor actually set, with fees reduced to their set keys."""
        return self.model_dump(exclude_unset=True, exclude_none=True)

    def summary(self) -> str:
        bits: list[str] = []
        if self.title:
            bits.append(self.title)
        bits.append(self.price)
        if self.station:
            minute = f" {self.station_minute}分" if self.station_minute is not None else ""
            bits.append(f"{self.station}{minute}")
        if self.area is not None:
            bits.append(f"{self.area}㎡")
        if self.year_built is not None:
            bits.append(f"{self.year_built}年築")
        return " | ".join(bits)


# ============================================================
# Stored records
# ============================================================


class Rating(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    score: RatingScore | None = None
    comment: str = ""
    updated_at: datetime = Field(default_factory=_utcnow, alias="updatedAt")


class StoredProperty(ExtractedFields):
    """
    Durable record: extracted fields plus identity, workflow state and curation data.

    `id` and `created_at` are assigned once and never change. `manually_edited_fields`
    names fields a person overrode; refreshes leave those fields alone.
    """

    id: str
    created_at: datetime = Field(default_factory=_utcnow, alias="createdAt")
    status: PropertyStatus = "considering"
    ratings: list[Rating] = Field(default_factory=list)
    manually_edited_fields: list[str] = Field(default_factory=list, alias="manuallyEditedFields")

    def rating_for(self, user_id: str) -> Rating | None:
        return next((r for r in self.ratings if r.user_id == user_id), None)


# ============================================================
# Collection-wide settings
# ============================================================


class UserConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str
    icon: str = "👤"


class LoanSettings(BaseModel):
    """Loan assumptions shared by every property."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    interest_rate: float = Field(0.5, ge=0, alias="interestRate", description="Annual rate in percent (0.5 = 0.5%).")
    term_years: int = Field(35, ge=1, alias="termYears")
    down_payment: float = Field(0, ge=0, alias="downPayment", description="Down payment in yen.")


def default_users() -> list[UserConfig]:
    return [UserConfig(id="u1", name="ユーザー1", icon="👤")]


class UserSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    users: list[UserConfig] = Field(default_factory=default_users)
    loan: LoanSettings = Field(default_factory=LoanSettings)


class PropertyCollection(BaseModel):
    """The whole persisted document. Mutated in memory inside a store transaction."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    properties: list[StoredProperty] = Field(default_factory=list)
    settings: UserSettings = Field(default_factory=UserSettings)

    def index_of(self, property_id: str) -> int | None:
        return next((i for i, p in enumerate(self.properties) if p.id == property_id), None)

    def find_by_url(self, url: str) -> StoredProperty | None:
        return next((p for p in self.properties if p.url == url), None)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
