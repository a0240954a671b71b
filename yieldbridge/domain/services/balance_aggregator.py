"""
Balance Aggregator - Unified totals across chains.

Combines per-chain YieldBalance snapshots into one AggregatedBalance.
Detects:
- DUPLICATE_CHAIN: the same chain reported more than once (several providers)
- BITCOIN_OUTSIDE_CUSTODY: nonzero bitcoin reported by a non-custody chain
"""

from __future__ import annotations
from typing import Dict, Iterable, List

from ...models.balance import AggregatedBalance, BalanceAnomaly, YieldBalance, ZERO
from ...models.chain import Chain
from ...utils.logging_setup import get_logger


logger = get_logger(__name__)

DUPLICATE_CHAIN = "duplicate_chain"
BITCOIN_OUTSIDE_CUSTODY = "bitcoin_outside_custody"


class BalanceAggregator:
    """
    Pure balance aggregation service.

    Only the first report for each chain counts. Bitcoin is summed from the
    custody chain alone.
    """

    def aggregate(self, balances: Iterable[YieldBalance]) -> AggregatedBalance:
        """
        Aggregate per-chain balances.

        Args:
            balances: Balance snapshots in report order.

        Returns:
            Immutable AggregatedBalance with the chains used and any anomalies.
        """
        used: Dict[Chain, YieldBalance] = {}
        anomalies: List[BalanceAnomaly] = []

        for balance in balances:
            if balance.chain in used:
                anomalies.append(BalanceAnomaly(
                    chain=balance.chain,
                    kind=DUPLICATE_CHAIN,
                    detail=f"{balance.chain.value} already reported"
                           f" by {used[balance.chain].source or 'unknown'};"
                           f" ignoring report from {balance.source or 'unknown'}",
                ))
                continue
            used[balance.chain] = balance

            if balance.chain != Chain.CUSTODY and balance.bitcoin_balance != ZERO:
                anomalies.append(BalanceAnomaly(
                    chain=balance.chain,
                    kind=BITCOIN_OUTSIDE_CUSTODY,
                    detail=f"{balance.chain.value} reported {balance.bitcoin_balance} BTC",
                ))

        chains = tuple(used.values())
        total_stablecoin = sum((b.stablecoin_balance for b in chains), ZERO)
        total_yield = sum((b.cumulative_yield for b in chains), ZERO)
        custody = used.get(Chain.CUSTODY)
        total_bitcoin = custody.bitcoin_balance if custody else ZERO

        for anomaly in anomalies:
            logger.warning(f"Balance anomaly [{anomaly.kind}]: {anomaly.detail}")

        return AggregatedBalance(
            total_stablecoin=total_stablecoin,
            total_bitcoin=total_bitcoin,
            total_yield=total_yield,
            chains=chains,
            anomalies=tuple(anomalies),
        )
