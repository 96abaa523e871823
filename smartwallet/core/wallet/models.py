"""
Identity, smart account and balance models.

A session links one or more external identities. The address of a linked
wallet identity owns exactly one smart account, and that account's stable
asset balance is cached here between refreshes.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator


class IdentityKind(str, Enum):
    """Kinds of external identity the identity provider can link."""
    EMAIL = "email"
    PHONE = "phone"
    WALLET = "wallet"
    GOOGLE = "google"
    TWITTER = "twitter"
    DISCORD = "discord"


@dataclass(frozen=True)
class LinkedIdentity:
    """An external identity confirmed as linked by the identity provider."""
    kind: IdentityKind
    external_id: str  # email address, phone number, wallet address or OAuth subject

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LinkedIdentity":
        return cls(kind=IdentityKind(data["kind"]), external_id=str(data["externalId"]))


class ProvisioningState(str, Enum):
    """Smart account lifecycle for one owner address."""
    UNINITIALIZED = "uninitialized"
    PROVISIONING = "provisioning"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class SmartAccount:
    """
    Contract account controlled by ``owner_address``.

    Immutable once created. The service derives ``scw_address`` from the
    owner deterministically.
    """
    owner_address: str
    scw_address: str
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True)
class Balance:
    """Net stable-asset balance of a smart account, in raw units."""
    amount: str
    as_of: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def display_amount(self, decimals: int = 6) -> Decimal:
        """Balance expressed in whole asset units."""
        return Decimal(self.amount).scaleb(-decimals)


class SmartAccountWallet(BaseModel):
    model_config = ConfigDict(extra="allow")

    scw_address: str


class SmartAccountPayload(BaseModel):
    """``createSmartAccount`` response: the account lives under ``wallet``."""
    model_config = ConfigDict(extra="allow")

    wallet: SmartAccountWallet


class BalancePayload(BaseModel):
    """``getSmartBalance`` response."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    net_balance: str = Field(alias="netBalance")

    @field_validator("net_balance", mode="before")
    @classmethod
    def _coerce_decimal_string(cls, value: Any) -> str:
        if isinstance(value, bool):
            raise ValueError("netBalance must be numeric")
        text = str(value).strip()
        try:
            parsed = Decimal(text)
        except InvalidOperation as exc:
            raise ValueError(f"netBalance is not a decimal: {value!r}") from exc
        if not parsed.is_finite() or parsed < 0:
            raise ValueError(f"netBalance must be a non-negative number: {value!r}")
        return text


__all__ = [
    "IdentityKind",
    "LinkedIdentity",
    "ProvisioningState",
    "SmartAccount",
    "Balance",
    "SmartAccountPayload",
    "BalancePayload",
]
