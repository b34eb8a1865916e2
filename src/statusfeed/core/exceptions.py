"""statusfeed exception hierarchy.

Typed exceptions for every error category the engine surfaces, so callers
can distinguish a rejected signature from an unreachable relay and let
``CancelledError`` propagate untouched.

Exception hierarchy:

```text
StatusFeedError (base -- never raised directly)
├── ConfigurationError      -- config validation, missing keys, bad YAML
├── ConnectivityError        -- relay unreachable, network failures
│   └── RelayTimeoutError    -- connection or response timed out
├── ProtocolError            -- malformed events or relay lists
├── SigningError             -- signer absent or signing rejected
└── PublishingError          -- event transmission failures
```

Note:
    Relay data is untrusted: out-of-policy incoming events are dropped, never
    raised. These exceptions are reserved for failures the caller must act on.
"""

from __future__ import annotations


class StatusFeedError(Exception):
    """Base exception for all statusfeed errors. Never raised directly."""


class ConfigurationError(StatusFeedError):
    """Invalid or missing configuration (YAML, env vars, CLI flags)."""


class ConnectivityError(StatusFeedError):
    """Base for relay/network connectivity errors."""


class RelayTimeoutError(ConnectivityError):
    """Connection or response timed out."""


class ProtocolError(StatusFeedError):
    """Malformed event, tag, or relay list that cannot be interpreted."""


class SigningError(StatusFeedError):
    """The signing provider is unavailable or refused to sign.

    Raised from [Signer.sign_event()][statusfeed.utils.signer.Signer.sign_event]
    and propagated unchanged by
    [StatusPublisher.publish()][statusfeed.services.statuses.publisher.StatusPublisher.publish],
    which applies nothing locally in that case.
    """


class PublishingError(StatusFeedError):
    """Failed to transmit a signed event to any write relay."""
