"""Adapters to the outside world: relay transport, signing, key loading, identity storage.

Sits in the middle of the diamond DAG next to ``core`` and ``nips``. Each
external collaborator of the engine is declared here as a ``typing.Protocol``
with one concrete implementation.

Attributes:
    RelayTransport: Network seam; [NostrSdkTransport][statusfeed.utils.transport.NostrSdkTransport]
        implements it on ``nostr_sdk.Client``.
    Signer: Identity and signing seam; [KeysSigner][statusfeed.utils.signer.KeysSigner]
        signs with a local key. [SignerProbe][statusfeed.utils.signer.SignerProbe]
        waits for an injected signer to become available.
    IdentityStore: Logged-in pubkey persistence;
        [FileIdentityStore][statusfeed.utils.storage.FileIdentityStore] and
        [MemoryIdentityStore][statusfeed.utils.storage.MemoryIdentityStore].
    KeysConfig: Pydantic model loading ``nostr_sdk.Keys`` from an env var.
"""

from .keys import ENV_PRIVATE_KEY, KeysConfig, load_keys_from_env
from .signer import KeysSigner, Signer, SignerProbe, SignerState
from .storage import FileIdentityStore, IdentityStore, MemoryIdentityStore
from .transport import (
    DEFAULT_TIMEOUT,
    NostrSdkTransport,
    RelayTransport,
    Subscription,
    to_nostr_filter,
)


__all__ = [
    "DEFAULT_TIMEOUT",
    "ENV_PRIVATE_KEY",
    "FileIdentityStore",
    "IdentityStore",
    "KeysConfig",
    "KeysSigner",
    "MemoryIdentityStore",
    "NostrSdkTransport",
    "RelayTransport",
    "Signer",
    "SignerProbe",
    "SignerState",
    "Subscription",
    "load_keys_from_env",
    "to_nostr_filter",
]
