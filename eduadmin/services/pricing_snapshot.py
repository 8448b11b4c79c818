"""Learning-group pricing snapshot: one canonical, versioned representation.

Learning groups freeze the program/sub-program prices at the moment they
are created. Older clients send the snapshot as a JSON-encoded string or
use legacy key names (``gap``); both are normalised here, at the write
boundary, so everything stored and returned is the structured v1 shape:

    {
        "schemaVersion": 1,
        "programPrice": 300.0, "subProgramPrice": 120.0, "discount": 20.0,
        "totalPrice": 420.0, "finalPrice": 400.0, "currency": "EUR",
        "coursePrice": 420.0, "numberOfPayments": 4,
        "gapBetweenPayments": 30, "pricePerMonth": 100.0,
        "paymentMethod": "installments", "pricingModel": "installments"
    }

Derived fields (totalPrice, finalPrice, pricePerMonth) are always
recomputed from the inputs; values sent by the client are ignored.
"""
import json
from dataclasses import asdict, dataclass

SCHEMA_VERSION = 1

PAYMENT_METHODS = {"one-time", "installments", "monthly", "custom"}

_LEGACY_KEYS = {
    "gap": "gapBetweenPayments",
    "schema_version": "schemaVersion",
}


@dataclass
class PricingSnapshot:
    programPrice: float = 0.0
    subProgramPrice: float = 0.0
    discount: float = 0.0
    currency: str = "EUR"
    coursePrice: float | None = None
    numberOfPayments: int = 1
    gapBetweenPayments: int | None = None
    paymentMethod: str | None = None
    pricingModel: str | None = None

    @property
    def total_price(self) -> float:
        return self.programPrice + self.subProgramPrice

    @property
    def final_price(self) -> float:
        return self.total_price - self.discount

    @property
    def price_per_month(self) -> float:
        if self.numberOfPayments > 1:
            return round(self.final_price / self.numberOfPayments, 2)
        return self.final_price

    def effective_price(self) -> float:
        """Price charged per billing unit for the snapshot's pricing model."""
        course_price = self.coursePrice if self.coursePrice is not None else self.total_price
        if self.pricingModel in ("per_month", "subscription") and self.numberOfPayments > 1:
            return self.price_per_month
        return course_price

    def to_dict(self) -> dict:
        result = asdict(self)
        if result["coursePrice"] is None:
            result["coursePrice"] = self.total_price
        result.update(
            schemaVersion=SCHEMA_VERSION,
            totalPrice=self.total_price,
            finalPrice=self.final_price,
            pricePerMonth=self.price_per_month,
        )
        return result


def _number(raw, name: str, *, integer: bool = False):
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        raise ValueError(f"pricingSnapshot.{name} must be a number")
    try:
        return int(raw) if integer else float(raw)
    except (ValueError, TypeError):
        raise ValueError(f"pricingSnapshot.{name} must be a number") from None


def parse_pricing_snapshot(value) -> PricingSnapshot:
    """Parse a snapshot from a dict or a JSON-encoded string.

    Raises:
        ValueError: malformed JSON, wrong shape, negative or non-numeric
            prices, or an unsupported schema version.
    """
    if isinstance(value, PricingSnapshot):
        return value
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            raise ValueError("pricingSnapshot is not valid JSON") from None
    if not isinstance(value, dict):
        raise ValueError("pricingSnapshot must be an object")

    data = {_LEGACY_KEYS.get(k, k): v for k, v in value.items()}
    version = data.get("schemaVersion", SCHEMA_VERSION)
    if version != SCHEMA_VERSION:
        raise ValueError(f"Unsupported pricingSnapshot schemaVersion: {version}")

    payments = _number(data.get("numberOfPayments"), "numberOfPayments", integer=True)
    snapshot = PricingSnapshot(
        programPrice=_number(data.get("programPrice"), "programPrice") or 0.0,
        subProgramPrice=_number(data.get("subProgramPrice"), "subProgramPrice") or 0.0,
        discount=_number(data.get("discount"), "discount") or 0.0,
        currency=str(data.get("currency") or "EUR"),
        coursePrice=_number(data.get("coursePrice"), "coursePrice"),
        numberOfPayments=1 if payments is None else payments,
        gapBetweenPayments=_number(data.get("gapBetweenPayments"), "gapBetweenPayments", integer=True),
        paymentMethod=data.get("paymentMethod"),
        pricingModel=(str(data["pricingModel"]).lower() if data.get("pricingModel") else None),
    )
    for name in ("programPrice", "subProgramPrice", "discount"):
        if getattr(snapshot, name) < 0:
            raise ValueError(f"pricingSnapshot.{name} cannot be negative")
    if snapshot.numberOfPayments < 1:
        raise ValueError("pricingSnapshot.numberOfPayments must be at least 1")
    if snapshot.paymentMethod is not None and snapshot.paymentMethod not in PAYMENT_METHODS:
        raise ValueError(f"pricingSnapshot.paymentMethod must be one of {sorted(PAYMENT_METHODS)}")
    return snapshot


def normalize_pricing_snapshot(value) -> dict:
    """Entity-registry normaliser: any accepted input → canonical v1 dict."""
    return parse_pricing_snapshot(value).to_dict()
