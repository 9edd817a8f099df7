import pytest

from poker_crypto.elgamal import Cipher
from poker_crypto.errors import (
    InvalidContribution,
    StaleOrDuplicateContribution,
    UnresponsiveParticipant,
)
from poker_crypto.reveal import RevelationSession, collective_decrypt, reveal_for_owner


@pytest.fixture
def secrets(three_party_keys):
    _, shared, _ = three_party_keys
    return [s.shared_secret for s in shared]


@pytest.fixture
def card(engine, three_party_keys):
    _, _, aggregate = three_party_keys
    return engine.encrypt(23, aggregate)


def test_collective_decrypt(engine, card, secrets):
    assert collective_decrypt(engine, card, secrets) == 23
    assert collective_decrypt(engine, card, reversed(secrets)) == 23


def test_reveal_for_owner(engine, card, secrets):
    owner, *others = secrets
    assert reveal_for_owner(engine, card, owner, others) == 23


def test_withheld_share_hides_card_from_owner(engine, card, secrets):
    owner, withheld, other = secrets
    assert reveal_for_owner(engine, card, owner, [other]) != 23
    assert collective_decrypt(engine, card, [owner, other]) != 23


def test_collective_session(params, engine, card, secrets):
    session = RevelationSession('s1', params, card, ['a', 'b', 'c'])
    by_id = dict(zip('abc', secrets))

    while not session.complete:
        pid = session.next_contributor
        session.accept(pid, engine.decrypt(session.current, by_id[pid]))

    assert session.contributed == ['a', 'b', 'c']
    assert session.plaintext == 23


def test_plaintext_unavailable_before_completion(params, card):
    session = RevelationSession('s1', params, card, ['a', 'b'])
    with pytest.raises(StaleOrDuplicateContribution):
        session.plaintext


def test_owner_session_hides_plaintext(params, engine, card, secrets):
    session = RevelationSession('s2', params, card, ['b', 'c'], recipient='a')
    session.accept('b', engine.decrypt(session.current, secrets[1]))
    session.accept('c', engine.decrypt(session.current, secrets[2]))

    assert session.complete
    with pytest.raises(PermissionError):
        session.plaintext
    assert engine.decrypt(session.current, secrets[0]).c2 == 23


def test_recipient_cannot_be_contributor(params, card):
    with pytest.raises(ValueError):
        RevelationSession('s3', params, card, ['a', 'b'], recipient='a')


def test_out_of_turn_and_duplicate_contributions(params, engine, card, secrets):
    session = RevelationSession('s4', params, card, ['a', 'b', 'c'])

    with pytest.raises(StaleOrDuplicateContribution):
        session.accept('b', engine.decrypt(card, secrets[1]))

    first = engine.decrypt(card, secrets[0])
    session.accept('a', first)
    with pytest.raises(StaleOrDuplicateContribution):
        session.accept('a', first)

    # Rejections leave the collected state untouched
    assert session.current == first
    assert session.contributed == ['a']


def test_contribution_must_keep_c1(params, card):
    session = RevelationSession('s5', params, card, ['a'])
    tampered = Cipher((card.c1 * 2) % params.p, card.c2)
    with pytest.raises(InvalidContribution):
        session.accept('a', tampered)
    assert not session.contributed


def test_session_deadline(params, card, clock):
    session = RevelationSession('s6', params, card, ['a', 'b'], turn_timeout=2, clock=clock)
    clock.advance(3)
    with pytest.raises(UnresponsiveParticipant) as exc:
        session.check_deadline()
    assert exc.value.participant_id == 'a'
