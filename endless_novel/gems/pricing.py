from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from urllib.parse import urlencode

from endless_novel.config.schema import GemsConfig, PricingTierConfig, default_pricing_tiers

_CENT = Decimal("0.01")


class UnknownPackageError(LookupError):
    pass


@dataclass(frozen=True)
class GemPackage:
    id: int
    title: str
    amount: int
    price: Decimal
    description: str


def clamp_amount(amount: int) -> int:
    return max(0, int(amount))


def can_purchase(amount: int) -> bool:
    return clamp_amount(amount) > 0


def unit_price(amount: int, tiers: list[PricingTierConfig] | None = None) -> Decimal:
    """Per-gem price for an order of ``amount`` gems; non-increasing in amount."""
    tiers = tiers or default_pricing_tiers()
    amount = clamp_amount(amount)
    for tier in tiers:
        if tier.max_amount is None or amount <= tier.max_amount:
            return tier.unit_price
    return tiers[-1].unit_price


def compute_total(amount: int, tiers: list[PricingTierConfig] | None = None) -> Decimal:
    amount = clamp_amount(amount)
    total = Decimal(amount) * unit_price(amount, tiers)
    return total.quantize(_CENT, rounding=ROUND_HALF_UP)


def price_per_gem_label(amount: int, tiers: list[PricingTierConfig] | None = None) -> str:
    return f"${unit_price(amount, tiers):.2f}"


def format_price(price: Decimal) -> str:
    return f"${price.quantize(_CENT, rounding=ROUND_HALF_UP)}"


def load_packages(config: GemsConfig) -> list[GemPackage]:
    return [
        GemPackage(
            id=package.id,
            title=package.title,
            amount=package.amount,
            price=package.price.quantize(_CENT, rounding=ROUND_HALF_UP),
            description=package.description,
        )
        for package in config.packages
    ]


def find_package(packages: list[GemPackage], package_id: int) -> GemPackage:
    for package in packages:
        if package.id == package_id:
            return package
    raise UnknownPackageError(f"Unknown gem package: {package_id}")


def payment_url(package: GemPackage, base_url: str = "/user/payment/add") -> str:
    query = urlencode({"package": package.id, "amount": package.amount, "price": str(package.price)})
    return f"{base_url}?{query}"
