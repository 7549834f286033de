"""
Blackjack evaluator for bitevolve.

Each gene is a complete draw/stand policy. The policy is indexed by three
input fields:

1. Player ace count (2 bits, clamped to 3)
2. Player hand total, aces counted soft when possible (5 bits)
3. Dealer total showing, i.e. every card except the hole card (5 bits)

and returns one output bit: 1 = draw, 0 = stand. Fitness is the sum over a
number of hands of 0 (loss), 1 (push) or 2 (win).
"""

import logging
import threading
from dataclasses import dataclass
from typing import List, Optional, Union

import numpy as np

from ..evolutionary.gene_pool import GenePool
from .base import FitnessEvaluator

logger = logging.getLogger(__name__)

SUITS = ['Spades', 'Hearts', 'Clubs', 'Diamonds']
RANKS = ['Ace', '2', '3', '4', '5', '6', '7', '8', '9', '10', 'Jack', 'Queen', 'King']

BLACKJACK = 21
DEALER_STANDS_ON = 17
MAX_ACE_FIELD = 3

LOSS, PUSH, WIN = 0, 1, 2


@dataclass(frozen=True)
class Card:
    """Playing card; ``rank`` 0 is the ace, 10-12 are face cards."""
    suit: int
    rank: int
    
    @property
    def value(self) -> int:
        """Hard value: ace 1, face cards 10."""
        return min(self.rank + 1, 10)
    
    @property
    def is_ace(self) -> bool:
        return self.rank == 0
    
    def pretty(self) -> str:
        return f"{RANKS[self.rank]} of {SUITS[self.suit]}"


class Deck:
    """
    52-card deck dealt from the top and reshuffled once exhausted.
    
    Dealing is guarded by a lock so threaded fitness passes can share one
    deck; the card order each gene sees then depends on thread scheduling.
    """
    
    def __init__(self, rng: Union[np.random.Generator, int, None] = None):
        self.rng = np.random.default_rng(rng)
        self.cards: List[Card] = [Card(suit, rank) for suit in range(4) for rank in range(13)]
        self._lock = threading.Lock()
        self.shuffle()
    
    def shuffle(self) -> None:
        self.rng.shuffle(self.cards)
        self._top = len(self.cards)
    
    def next(self) -> Card:
        with self._lock:
            if self._top == 0:
                self.shuffle()
            self._top -= 1
            return self.cards[self._top]


def _soft_total(cards: List[Card]) -> int:
    total = sum(card.value for card in cards)
    # at most one ace can count 11 without busting
    if any(card.is_ace for card in cards) and total + 10 <= BLACKJACK:
        total += 10
    return total


class Hand:
    """Cards held by the player or the dealer."""
    
    def __init__(self, deck: Deck):
        self.deck = deck
        self.cards: List[Card] = []
    
    def draw(self) -> Card:
        card = self.deck.next()
        self.cards.append(card)
        return card
    
    def __len__(self) -> int:
        return len(self.cards)
    
    @property
    def score(self) -> int:
        return _soft_total(self.cards)
    
    @property
    def aces(self) -> int:
        return sum(1 for card in self.cards if card.is_ace)
    
    @property
    def showing(self) -> int:
        """Total of every card except the first (hole) card."""
        return _soft_total(self.cards[1:])
    
    @property
    def is_natural(self) -> bool:
        return len(self.cards) == 2 and self.score == BLACKJACK


class BlackjackEvaluator(FitnessEvaluator):
    """
    Score lookup-table policies by playing blackjack against a house dealer.
    
    The pool must have three input fields (aces, player total, dealer showing)
    and a one-bit output, e.g. ``in_fields=[2, 5, 5]``, ``out_fields=[1]``.
    """
    
    def __init__(self, pool: GenePool, hands: int = 300,
                 rng: Union[np.random.Generator, int, None] = None):
        """
        Args:
            pool: Gene pool whose genes are played
            hands: Number of hands dealt per gene and generation
            rng: Generator for the deck; defaults to the pool's generator
        """
        if len(pool.in_field_widths) != 3:
            raise ValueError(
                f"Blackjack policies need 3 input fields, got {list(pool.in_field_widths)}"
            )
        if hands <= 0:
            raise ValueError(f"Number of hands must be positive, got {hands}")
        self.pool = pool
        self.hands = hands
        self.deck = Deck(pool.rng if rng is None else rng)
    
    @property
    def perfect_score(self) -> int:
        return WIN * self.hands
    
    def wants_card(self, gene_id: int, player: Hand, dealer: Hand) -> bool:
        state = [min(player.aces, MAX_ACE_FIELD), player.score, dealer.showing]
        return self.pool.result(gene_id, state) == 1
    
    def play(self, gene_id: int) -> int:
        """Play one hand with the gene's policy and return 0, 1 or 2."""
        dealer = Hand(self.deck)
        player = Hand(self.deck)
        player.draw()
        dealer.draw()
        player.draw()
        dealer.draw()
        
        if dealer.score != BLACKJACK and player.score != BLACKJACK:
            while self.wants_card(gene_id, player, dealer):
                player.draw()
                if player.score > BLACKJACK:
                    break
            
            if player.score < BLACKJACK or (player.score == BLACKJACK and len(player) > 2):
                # house rule: dealer hits below 17 and on soft 17
                while (dealer.score < DEALER_STANDS_ON
                       or (dealer.score == DEALER_STANDS_ON and dealer.aces > 0)):
                    dealer.draw()
        
        return self.judge(player, dealer)
    
    @staticmethod
    def judge(player: Hand, dealer: Hand) -> int:
        if dealer.is_natural and player.is_natural:
            return PUSH
        if dealer.is_natural:
            return LOSS
        if player.is_natural:
            return WIN
        if player.score > BLACKJACK:
            return LOSS
        if dealer.score > BLACKJACK:
            return WIN
        if dealer.score == player.score:
            return PUSH
        return LOSS if dealer.score > player.score else WIN
    
    def fitness(self, gene_id: int) -> int:
        return sum(self.play(gene_id) for _ in range(self.hands))
    
    def head_start(self, copies: Optional[int] = None) -> None:
        """
        Seed gene 0 with the "draw below 17" baseline and copy it forward.
        
        Args:
            copies: Number of following genes that receive a copy of gene 0;
                defaults to a quarter of the hands per gene
        """
        aces_width, score_width, showing_width = self.pool.in_field_widths
        for aces in range(2 ** aces_width):
            for score in range(2 ** score_width):
                for showing in range(2 ** showing_width):
                    self.pool.set_result(
                        0, [aces, score, showing], 1 if score < DEALER_STANDS_ON else 0
                    )
        
        if copies is None:
            copies = self.hands // 4
        copies = min(copies, len(self.pool) - 1)
        for gene_id in range(1, copies + 1):
            self.pool[gene_id].copy_from(self.pool[0])
        logger.info(f"Seeded baseline policy into genes 0..{copies}")
