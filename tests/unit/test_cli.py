"""Unit tests for the statusfeed command-line entry point."""

from pathlib import Path

import pytest

from statusfeed import __main__ as cli
from statusfeed.services.bootstrap import BootstrapConfig
from statusfeed.services.engine import SignerConfig, StatusFeed, StatusFeedConfig
from statusfeed.utils.storage import MemoryIdentityStore


ALICE = "a" * 64
BOB = "b" * 64
RELAY_A = "wss://relay-a.example.com"
NOW = 1_700_000_000


@pytest.fixture
def make_feed(transport, clock):
    def factory(signer=None, identity=None):
        config = StatusFeedConfig(
            bootstrap=BootstrapConfig(default_bootstrap_relays=[RELAY_A]),
            signer=SignerConfig(interval=0.01, max_checks=1),
        )
        return StatusFeed(
            config,
            transport=transport,
            signer=signer,
            identity_store=MemoryIdentityStore(identity),
            clock=clock,
        )

    return factory


class TestParseArgs:
    """parse_args()."""

    def test_watch_defaults(self):
        args = cli.parse_args(["watch"])
        assert args.command == "watch"
        assert args.config == cli.DEFAULT_CONFIG
        assert args.log_level == "INFO"
        assert args.pubkey is None
        assert args.once is False

    def test_watch_options(self):
        args = cli.parse_args(
            ["--config", "x.yaml", "--log-level", "DEBUG", "watch", "--pubkey", ALICE, "--once"]
        )
        assert args.config == Path("x.yaml")
        assert args.log_level == "DEBUG"
        assert args.pubkey == ALICE
        assert args.once is True

    def test_post(self):
        args = cli.parse_args(["post", "coding", "--link", "https://x.example", "--ttl", "60"])
        assert args.command == "post"
        assert args.content == "coding"
        assert args.link == "https://x.example"
        assert args.ttl == 60

    def test_post_empty_content_clears(self):
        args = cli.parse_args(["post", ""])
        assert args.content == ""
        assert args.link == ""
        assert args.ttl is None

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.parse_args([])

    def test_invalid_log_level(self):
        with pytest.raises(SystemExit):
            cli.parse_args(["--log-level", "TRACE", "watch"])


class TestLoadYaml:
    """_load_yaml_dict()."""

    def test_missing_file(self, tmp_path):
        assert cli._load_yaml_dict(tmp_path / "missing.yaml") == {}

    def test_reads_mapping(self, tmp_path):
        path = tmp_path / "statusfeed.yaml"
        path.write_text("interval: 900\n")
        assert cli._load_yaml_dict(path) == {"interval": 900}


class TestCommands:
    """watch, post, and logout against an in-memory network."""

    async def test_watch_once(self, make_feed, transport, make_status, make_contacts_event):
        transport.add(
            RELAY_A,
            make_contacts_event(ALICE, [BOB], relays={RELAY_A: {"read": True, "write": True}}),
            make_status(BOB, NOW - 10, "coding"),
        )
        feed = make_feed()

        assert await cli.watch(feed, ALICE, once=True) == 0
        assert feed.status_of(BOB).general.content == "coding"
        assert transport.closed

    async def test_watch_once_restores_identity(self, make_feed, transport):
        feed = make_feed(identity=ALICE)
        assert await cli.watch(feed, None, once=True) == 0
        assert feed.pubkey == ALICE

    async def test_watch_without_identity(self, make_feed):
        assert await cli.watch(make_feed(), None, once=True) == 1

    async def test_post(self, make_feed, signer, transport, relay_list):
        transport.relay_list = relay_list
        feed = make_feed(signer=signer)
        assert await cli.post(feed, "coding", "", 60) == 0
        assert transport.sent[0][0].content == "coding"

    async def test_post_invalid_ttl(self, make_feed, signer, transport):
        assert await cli.post(make_feed(signer=signer), "coding", "", -1) == 1
        assert transport.sent == []

    async def test_post_without_signer(self, make_feed, transport):
        assert await cli.post(make_feed(), "coding", "", None) == 1
        assert transport.sent == []

    async def test_post_not_accepted(self, make_feed, signer, transport):
        transport.accepting = []
        assert await cli.post(make_feed(signer=signer), "coding", "", None) == 1

    async def test_logout(self, make_feed):
        feed = make_feed(identity=ALICE)
        assert await cli.logout(feed) == 0
        assert feed._identity.load() is None


class TestMain:
    """main() configuration handling."""

    async def test_invalid_config(self, tmp_path, monkeypatch):
        monkeypatch.setattr(cli, "setup_logging", lambda level: None)
        path = tmp_path / "statusfeed.yaml"
        path.write_text("interval: 1\n")
        assert await cli.main(["--config", str(path), "logout"]) == 1
