from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator


DEFAULT_GENRE_IMAGES: dict[str, str] = {
    "fantasy": "community1.jpg",
    "scifi": "community3.jpg",
    "mystery": "community5.jpg",
    "horror": "community4.jpg",
}


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    data_dir: Path = Field(default=Path("./data"))
    log_level: str = Field(default="INFO")


class StorageConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    sqlite_path: Path = Field(default=Path("./data/endless_novel.db"))


class StoriesConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    image_base_path: str = "/images/community"
    genre_images: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_GENRE_IMAGES))
    default_image: str = "community2.jpg"
    story_url_prefix: str = "/story/read"

    @field_validator("genre_images")
    @classmethod
    def _lowercase_genres(cls, value: dict[str, str]) -> dict[str, str]:
        return {genre.strip().lower(): image for genre, image in value.items()}

    def image_url(self, image_name: str) -> str:
        return f"{self.image_base_path.rstrip('/')}/{image_name}"


class PricingTierConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # None marks the open-ended top tier.
    max_amount: int | None = None
    unit_price: Decimal

    @field_validator("unit_price")
    @classmethod
    def _positive_price(cls, value: Decimal) -> Decimal:
        if value <= 0:
            raise ValueError("unit_price must be positive")
        return value


class GemPackageConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int
    title: str
    amount: int
    price: Decimal
    description: str = ""

    @field_validator("amount")
    @classmethod
    def _positive_amount(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("package amount must be positive")
        return value

    @field_validator("price")
    @classmethod
    def _non_negative_price(cls, value: Decimal) -> Decimal:
        if value < 0:
            raise ValueError("package price must be non-negative")
        return value


def default_pricing_tiers() -> list[PricingTierConfig]:
    return [
        PricingTierConfig(max_amount=100, unit_price=Decimal("0.05")),
        PricingTierConfig(max_amount=500, unit_price=Decimal("0.04")),
        PricingTierConfig(max_amount=None, unit_price=Decimal("0.03")),
    ]


def default_gem_packages() -> list[GemPackageConfig]:
    return [
        GemPackageConfig(
            id=1,
            title="Starter Pack",
            amount=100,
            price=Decimal("5.00"),
            description="perfect for quick adventures.",
        ),
        GemPackageConfig(
            id=2,
            title="Adventurer Pack",
            amount=250,
            price=Decimal("10.00"),
            description="ideal for extended storytelling.",
        ),
        GemPackageConfig(
            id=3,
            title="Explorer Pack",
            amount=500,
            price=Decimal("15.00"),
            description="great for dedicated creators.",
        ),
    ]


class SubscriptionTierConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    title: str
    monthly_price: Decimal
    yearly_price: Decimal
    monthly_gems: int

    @field_validator("monthly_gems")
    @classmethod
    def _positive_gems(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("monthly_gems must be positive")
        return value


def default_subscription_tiers() -> list[SubscriptionTierConfig]:
    return [
        SubscriptionTierConfig(
            id="adventurer",
            title="Adventurer",
            monthly_price=Decimal("9.99"),
            yearly_price=Decimal("99.99"),
            monthly_gems=300,
        ),
        SubscriptionTierConfig(
            id="hero",
            title="Hero",
            monthly_price=Decimal("19.99"),
            yearly_price=Decimal("199.99"),
            monthly_gems=800,
        ),
        SubscriptionTierConfig(
            id="legend",
            title="Legend",
            monthly_price=Decimal("29.99"),
            yearly_price=Decimal("299.99"),
            monthly_gems=1500,
        ),
    ]


class GemsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    pricing_tiers: list[PricingTierConfig] = Field(default_factory=default_pricing_tiers)
    packages: list[GemPackageConfig] = Field(default_factory=default_gem_packages)
    subscription_tiers: list[SubscriptionTierConfig] = Field(default_factory=default_subscription_tiers)
    purchase_delay_s: float = 1.5
    signup_bonus: int = 300
    payment_url: str = "/user/payment/add"

    @field_validator("purchase_delay_s")
    @classmethod
    def _non_negative_delay(cls, value: float) -> float:
        if value < 0:
            raise ValueError("purchase_delay_s must be non-negative")
        return value

    @field_validator("signup_bonus")
    @classmethod
    def _non_negative_bonus(cls, value: int) -> int:
        if value < 0:
            raise ValueError("signup_bonus must be non-negative")
        return value

    @model_validator(mode="after")
    def _validate_tiers_and_packages(self) -> "GemsConfig":
        if not self.pricing_tiers:
            raise ValueError("gems.pricing_tiers cannot be empty")
        if self.pricing_tiers[-1].max_amount is not None:
            raise ValueError("the last pricing tier must be open-ended (max_amount: null)")

        previous_max = 0
        previous_price: Decimal | None = None
        last_idx = len(self.pricing_tiers) - 1
        for idx, tier in enumerate(self.pricing_tiers):
            if idx < last_idx:
                if tier.max_amount is None:
                    raise ValueError("only the last pricing tier may be open-ended")
                if tier.max_amount <= previous_max:
                    raise ValueError("pricing tier max_amount values must be strictly ascending")
                previous_max = tier.max_amount
            if previous_price is not None and tier.unit_price > previous_price:
                raise ValueError("pricing tier unit prices must be non-increasing")
            previous_price = tier.unit_price

        package_ids = [package.id for package in self.packages]
        if len(package_ids) != len(set(package_ids)):
            raise ValueError("gem package ids must be unique")

        tier_ids = [tier.id for tier in self.subscription_tiers]
        if len(tier_ids) != len(set(tier_ids)):
            raise ValueError("subscription tier ids must be unique")
        return self


class ContactConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = False
    endpoint: str = "https://api.emailjs.com/api/v1.0/email/send"
    service_id: str | None = None
    template_id: str | None = None
    public_key_env: str | None = "EMAILJS_PUBLIC_KEY"
    recipient: str = "endlessnovel@blackcode.ch"
    timeout_s: int = 30
    simulated_delay_s: float = 1.5

    @field_validator("timeout_s")
    @classmethod
    def _positive_timeout(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("contact.timeout_s must be positive")
        return value

    @field_validator("simulated_delay_s")
    @classmethod
    def _non_negative_delay(cls, value: float) -> float:
        if value < 0:
            raise ValueError("contact.simulated_delay_s must be non-negative")
        return value

    @model_validator(mode="after")
    def _require_ids_when_enabled(self) -> "ContactConfig":
        if self.enabled and not (self.service_id and self.template_id):
            raise ValueError("contact.service_id and contact.template_id are required when contact is enabled")
        return self


class ProfileConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    default_bio: str = "Passionate storyteller with a love for fantasy and sci-fi worlds."
    bio_max_chars: int = 500
    default_visibility: Literal["public", "friends", "private"] = "public"

    @field_validator("bio_max_chars")
    @classmethod
    def _positive_chars(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("bio_max_chars must be positive")
        return value


class AppConfigRoot(BaseModel):
    model_config = ConfigDict(extra="forbid")

    app: AppConfig = AppConfig()
    storage: StorageConfig = StorageConfig()
    stories: StoriesConfig = StoriesConfig()
    gems: GemsConfig = GemsConfig()
    profile: ProfileConfig = ProfileConfig()
    contact: ContactConfig = ContactConfig()


def resolve_paths(config: AppConfigRoot, base_dir: Path) -> AppConfigRoot:
    def _resolve(path_value: Path) -> Path:
        return path_value if path_value.is_absolute() else (base_dir / path_value).resolve()

    config.app.data_dir = _resolve(config.app.data_dir)
    config.storage.sqlite_path = _resolve(config.storage.sqlite_path)
    return config
