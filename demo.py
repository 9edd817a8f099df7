#!/usr/bin/env python3
"""
Command-line demo of a full mental poker hand.

Every party runs in this process: key exchange with the coordinator,
the shuffle cascade, dealing, private hole card reveals and the collective
flop, turn and river.
"""
import argparse
import logging
import random

from config import GameConfig
from poker_crypto.params import generate_domain_parameters
from poker_models.cards import get_card_name
from poker_models.coordinator import STAGES
from poker_models.game import MentalPokerGame


def names(cards):
    return [get_card_name(card) for card in cards]


def reveal_river_out_of_order(game):
    """
    Decrypt the river once more, removing the shares in a shuffled order.

    Decryption shares commute, so any order yields the same card.
    """
    river = game.coordinator.deal.river[0]
    order = list(game.participants)
    random.shuffle(order)
    for participant in order:
        river = participant.partial_decrypt(river)
        print(f"  after {participant.name}: c2={hex(river.c2)[:20]}...")
    return river.c2


def run_demo(config, verbose=False):
    """Play and narrate one hand."""
    print("Starting ElGamal shuffle/deal demo with Diffie-Hellman coordinator...\n")
    game = MentalPokerGame(config)

    aggregate_key = game.setup()
    print(f"Coordinator public key: {hex(game.coordinator.public_key)}")
    for participant in game.participants:
        print(f"{participant.name} shared public key: {hex(participant.shared_public_key)}")
    print(f"Aggregate public key: {hex(aggregate_key)}\n")

    deck = game.shuffle()
    print(f"Deck shuffled by {len(game.participants)} participants ({deck})")
    if verbose:
        for cipher in deck:
            print(f"  {cipher}")

    game.coordinator.deal_cards()
    print("\n--- Dealing cards ---")
    for participant in game.participants:
        cards = game.reveal_hole_cards(participant.id)
        print(f"{participant.name} cards: {names(cards)}")

    for stage in STAGES:
        print(f"{stage.capitalize()}: {names(game.reveal_community(stage))}")

    print("\nRevealing the river again with shares removed in random order:")
    print(f"River: {get_card_name(reveal_river_out_of_order(game))}")
    print("\nDemo completed!")
    return game


def main():
    """Main function"""
    parser = argparse.ArgumentParser(description='Run a mental poker hand in-process')
    parser.add_argument('--players', type=int, help='Number of participants')
    parser.add_argument('--key-size', type=int,
                        help='Generate a fresh safe-prime group of this many bits')
    parser.add_argument('--lenient-shuffle', action='store_true',
                        help='Only warn when a shuffle leaves the deck unchanged')
    parser.add_argument('--verbose', action='store_true', help='Print ciphertexts and protocol logs')

    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format='%(asctime)s %(name)s %(levelname)s %(message)s')

    config = GameConfig.from_env()
    if args.players:
        config.player_count = args.players
    if args.lenient_shuffle:
        config.strict_shuffle = False
    if args.key_size:
        print(f"Generating a {args.key_size}-bit group...")
        config.params = generate_domain_parameters(args.key_size)

    run_demo(config, verbose=args.verbose)


if __name__ == "__main__":
    main()
