import pytest

from poker_crypto.deck import EncryptedDeck, deal_deck
from poker_crypto.elgamal import Cipher
from poker_crypto.errors import MalformedCiphertext, ShuffleRejected


def numbered_deck(size=52, submitted=True):
    # Stand-in ciphertexts whose c2 is the card position
    return EncryptedDeck((Cipher(2, i) for i in range(1, size + 1)), version=3,
                         submitted=submitted)


def test_deal_partition():
    deal = deal_deck(numbered_deck(), ['a', 'b', 'c'], cards_per_player=2, community_cards=5)

    assert [c.c2 for c in deal.hole_cards['a']] == [1, 2]
    assert [c.c2 for c in deal.hole_cards['b']] == [3, 4]
    assert [c.c2 for c in deal.hole_cards['c']] == [5, 6]
    assert [c.c2 for c in deal.community] == [7, 8, 9, 10, 11]
    assert [c.c2 for c in deal.flop] == [7, 8, 9]
    assert [c.c2 for c in deal.turn] == [10]
    assert [c.c2 for c in deal.river] == [11]
    assert deal.stage('turn') == deal.turn


def test_deal_requires_submitted_deck():
    with pytest.raises(ShuffleRejected):
        deal_deck(numbered_deck(submitted=False), ['a', 'b'])


def test_deal_rejects_oversized_table():
    with pytest.raises(ValueError):
        deal_deck(numbered_deck(size=8), ['a', 'b'], community_cards=5)


def test_submitted_deck_is_final():
    with pytest.raises(ShuffleRejected):
        numbered_deck().next_version([])


def test_unknown_stage():
    deal = deal_deck(numbered_deck(), ['a', 'b'])
    with pytest.raises(ValueError):
        deal.stage('showdown')


def test_deck_dict_round_trip(params):
    deck = numbered_deck(size=4, submitted=False)
    restored = EncryptedDeck.from_dict(deck.to_dict(), params)
    assert restored.cards == deck.cards
    assert restored.version == 3
    assert not restored.submitted


@pytest.mark.parametrize('payload', [None, {}, {'cards': 'nope'}, {'cards': [], 'version': 'x'}])
def test_malformed_deck_payload(params, payload):
    with pytest.raises(MalformedCiphertext):
        EncryptedDeck.from_dict(payload, params)
