"""
Wallet state for the authenticated session:

- IdentityLinkRegistry: linked external identities, never fewer than one
- SmartAccountProvisioner: one smart account per owner address
- BalanceReader: cached smart account balance

Usage:
    from smartwallet.core.wallet import (
        IdentityKind,
        IdentityLinkRegistry,
        SmartAccountProvisioner,
        BalanceReader,
    )

    registry = IdentityLinkRegistry(session, identity_provider)
    await registry.link(IdentityKind.WALLET)

    provisioner = SmartAccountProvisioner(session, service)
    account = await provisioner.ensure_account(session.primary_address)

    balances = BalanceReader(session, service)
    await balances.refresh(account.scw_address)
"""

from .models import (
    Balance,
    BalancePayload,
    IdentityKind,
    LinkedIdentity,
    ProvisioningState,
    SmartAccount,
    SmartAccountPayload,
)
from .identity_registry import IdentityLinkRegistry
from .provisioner import SmartAccountProvisioner
from .balance import BalanceReader

__all__ = [
    # Models
    "Balance",
    "BalancePayload",
    "IdentityKind",
    "LinkedIdentity",
    "ProvisioningState",
    "SmartAccount",
    "SmartAccountPayload",
    # Components
    "IdentityLinkRegistry",
    "SmartAccountProvisioner",
    "BalanceReader",
]
