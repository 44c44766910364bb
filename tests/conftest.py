# [TESTER] v1

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Mapping, Optional

import pytest

from stakeledger.agents.governance_signer import GovernanceCommittee
from stakeledger.agents.registry_signer import RegistryKeypair, registry_keypair_from_seed, sign_release
from stakeledger.core.governance import GovernanceAction
from stakeledger.integration.config import LedgerConfig
from stakeledger.integration.stake_engine import CallContext, StakeLedger
from stakeledger.integration.tokens import InMemoryToken, ReturnConvention
from stakeledger.integration.transfer_port import InMemoryCustody


@pytest.fixture(scope="session")
def registry_keys() -> RegistryKeypair:
    return registry_keypair_from_seed(b"registry-a")


@pytest.fixture(scope="session")
def other_registry_keys() -> RegistryKeypair:
    return registry_keypair_from_seed(b"registry-b")


@pytest.fixture(scope="session")
def committee() -> GovernanceCommittee:
    # Two members keep BLS work small while still exercising aggregation.
    return GovernanceCommittee.from_seeds([b"gov-member-1", b"gov-member-2"])


@pytest.fixture
def config() -> LedgerConfig:
    return LedgerConfig(chain_id="stake-test", ledger_id="stake-ledger", slash_sink="treasury")


class LedgerHarness:
    """A ledger over in-memory custody plus the off-ledger signers that drive it."""

    def __init__(
        self,
        config: LedgerConfig,
        registry: RegistryKeypair,
        committee: GovernanceCommittee,
        tokens: Iterable[InMemoryToken],
    ):
        self.config = config
        self.registry = registry
        self.committee = committee
        self.tokens: Dict[str, InMemoryToken] = {t.token_id: t for t in tokens}
        self.custody = InMemoryCustody(config.ledger_id, tokens=tuple(self.tokens.values()))
        self.ledger = StakeLedger.create(
            config,
            registry_public_key=registry.public_key,
            governance_public_key=committee.public_key,
            port=self.custody,
        )

    def ctx(self, sender: str, value: int = 0, height: int = 0) -> CallContext:
        return CallContext(sender=sender, value=value, height=height)

    def deposit_native(self, owner: str, amount: int, synthesizer_id: str = "job-1") -> int:
        self.custody.fund_native(owner, amount)
        return self.ledger.deposit_native(self.ctx(owner, value=amount), synthesizer_id)

    def deposit_token(self, owner: str, token_id: str, amount: int, synthesizer_id: str = "job-1") -> int:
        token = self.tokens[token_id]
        token.mint(owner, amount)
        token.approve(owner, self.config.ledger_id, amount)
        return self.ledger.deposit_token(self.ctx(owner), token_id, amount, synthesizer_id)

    def sign_release(self, nonce: int, slash_amount: int = 0, *, keys: Optional[RegistryKeypair] = None) -> str:
        stake = self.ledger.get_stake(nonce)
        assert stake is not None
        return sign_release(
            self.ledger.rules.authorization,
            keys or self.registry,
            owner=stake.owner,
            asset=stake.asset,
            amount=stake.amount,
            nonce=nonce,
            slash_amount=slash_amount,
        )

    def prove(
        self,
        action: GovernanceAction,
        params: Optional[Mapping[str, Any]] = None,
        *,
        sequence: Optional[int] = None,
    ) -> str:
        seq = self.ledger.governance_sequence if sequence is None else sequence
        return self.committee.prove(self.ledger.rules.governance, action, sequence=seq, params=params)


def default_tokens() -> list[InMemoryToken]:
    return [
        InMemoryToken("USDX"),
        InMemoryToken("QUIET", return_convention=ReturnConvention.NONE),
    ]


@pytest.fixture
def harness_factory(
    config: LedgerConfig, registry_keys: RegistryKeypair, committee: GovernanceCommittee
) -> Callable[..., LedgerHarness]:
    def _make(tokens: Optional[Iterable[InMemoryToken]] = None) -> LedgerHarness:
        return LedgerHarness(config, registry_keys, committee, default_tokens() if tokens is None else tokens)

    return _make


@pytest.fixture
def harness(harness_factory: Callable[..., LedgerHarness]) -> LedgerHarness:
    return harness_factory()
