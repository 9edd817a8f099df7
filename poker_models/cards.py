"""
Card encoding between card numbers and rank/suit names.

Cards are the integers 1..52; card = suit_index * 13 + rank_index + 1.
"""

SUITS = ['♠', '♥', '♦', '♣']
RANKS = ['Ace', '2', '3', '4', '5', '6', '7', '8', '9', '10', 'Jack', 'Queen', 'King']
DECK_SIZE = len(SUITS) * len(RANKS)


def get_card_name(card_number):
    """
    Convert a card number to its display name, e.g. 1 -> 'Ace ♠'.

    Args:
        card_number (int): Card in [1, 52]

    Returns:
        str: Rank and suit separated by a space
    """
    if not 1 <= card_number <= DECK_SIZE:
        raise ValueError(f"Card number {card_number} outside 1..{DECK_SIZE}")
    suit_index, rank_index = divmod(card_number - 1, len(RANKS))
    return f"{RANKS[rank_index]} {SUITS[suit_index]}"


def get_card_number(card_name):
    """
    Convert a display name back to its card number.

    Args:
        card_name (str): Name as produced by get_card_name

    Returns:
        int: Card in [1, 52]
    """
    try:
        rank, suit = card_name.split(' ')
        return SUITS.index(suit) * len(RANKS) + RANKS.index(rank) + 1
    except ValueError as e:
        raise ValueError(f"Not a card name: {card_name!r}") from e


def card_to_dict(card_number):
    """Card as sent to clients."""
    name = get_card_name(card_number)
    suit_index, rank_index = divmod(card_number - 1, len(RANKS))
    return {
        'number': card_number,
        'rank': RANKS[rank_index],
        'suit': SUITS[suit_index],
        'name': name,
    }
