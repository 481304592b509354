"""Player transaction construction and per-call accumulation."""

from __future__ import annotations

import logging
from typing import Iterator, List, Set

from roster_autopilot.data import Player, PlayerTransaction, TransactionPlayer, TransactionType


logger = logging.getLogger(__name__)


def drop_transaction(
    team_key: str,
    player: Player,
    reason: str,
    *,
    is_inactive_list: bool,
    same_day_transactions: bool,
) -> PlayerTransaction:
    return PlayerTransaction(
        team_key=team_key,
        players=(
            TransactionPlayer(
                player_key=player.player_key,
                player_name=player.player_name,
                transaction_type=TransactionType.DROP,
                is_inactive_list=is_inactive_list,
            ),
        ),
        reason=reason,
        same_day_transactions=same_day_transactions,
    )


def add_transaction(
    team_key: str,
    player: Player,
    reason: str,
    *,
    same_day_transactions: bool,
    faab_league: bool,
    drop: Player | None = None,
    drop_is_inactive_list: bool = False,
) -> PlayerTransaction:
    """An add, or an add+drop pair when ``drop`` is given."""

    players = [
        TransactionPlayer(
            player_key=player.player_key,
            player_name=player.player_name,
            transaction_type=TransactionType.ADD,
            is_from_waivers=player.is_waiver_player,
        )
    ]
    if drop is not None:
        players.append(
            TransactionPlayer(
                player_key=drop.player_key,
                player_name=drop.player_name,
                transaction_type=TransactionType.DROP,
                is_inactive_list=drop_is_inactive_list,
            )
        )
    return PlayerTransaction(
        team_key=team_key,
        players=tuple(players),
        reason=reason,
        same_day_transactions=same_day_transactions,
        is_faab_required=player.is_waiver_player and faab_league,
    )


class PlayerTransactions:
    """Transactions proposed during one optimisation call.

    Adds are de-duplicated against drops already issued: an add carrying the
    same reason as an earlier drop is discarded, and no player is dropped or
    added twice.
    """

    def __init__(self) -> None:
        self._transactions: List[PlayerTransaction] = []
        self._drop_reasons: Set[str] = set()
        self._dropped: Set[str] = set()
        self._added: Set[str] = set()

    def __iter__(self) -> Iterator[PlayerTransaction]:
        return iter(self._transactions)

    def __len__(self) -> int:
        return len(self._transactions)

    def as_list(self) -> List[PlayerTransaction]:
        return list(self._transactions)

    @property
    def dropped_player_keys(self) -> frozenset[str]:
        return frozenset(self._dropped)

    @property
    def added_player_keys(self) -> frozenset[str]:
        return frozenset(self._added)

    def record(self, transaction: PlayerTransaction) -> bool:
        """Record ``transaction`` unless it duplicates an earlier one. Returns whether it was kept."""

        adds = transaction.added_player_keys
        drops = transaction.dropped_player_keys

        if adds and transaction.reason in self._drop_reasons:
            logger.debug("Skipping add with the same reason as an issued drop: %s", transaction.reason)
            return False
        if drops & self._dropped or adds & self._added:
            logger.debug("Skipping duplicate transaction: %s", transaction.reason)
            return False

        self._transactions.append(transaction)
        self._dropped |= drops
        self._added |= adds
        if drops and not adds:
            self._drop_reasons.add(transaction.reason)
        return True
