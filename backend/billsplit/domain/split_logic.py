# backend/billsplit/domain/split_logic.py
from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from billsplit.domain.distribution import distribute_units
from billsplit.domain.fees import forward, reverse
from billsplit.domain.models import (
    LineItem,
    Party,
    PartyShare,
    SplitBreakdown,
    SplitOptions,
    WeightedShare,
)
from billsplit.domain.rounding import (
    CURRENCY_DECIMALS,
    finite_or_zero,
    from_minor_units,
    non_negative,
    round_to_step,
    to_minor_units,
)

_FACTOR = 10 ** CURRENCY_DECIMALS
_EPSILON = 1e-9
# Leftovers compared at this precision so float noise keeps index order on ties.
_LEFTOVER_PLACES = 6


def weight_fractions(weights: Sequence[float]) -> List[float]:
    """
    Normalize relative weights into fractions summing to 1.

    Non-finite and negative weights count as 0. If nothing is left, every
    party gets an equal share.
    """
    if not weights:
        return []
    clean = [non_negative(w) for w in weights]
    total = sum(clean)
    if total <= 0:
        return [1 / len(clean)] * len(clean)
    return [w / total for w in clean]


def _assignment_fractions(
    item: LineItem, party_index: Mapping[str, int], party_count: int
) -> Optional[List[float]]:
    """
    Per-party fractions of one item from its explicit assignments.

    Returns None when no assignment names a known party, so the caller can
    apply the unassigned-item policy instead.
    """
    known = [a for a in item.assignments if a.party_id in party_index]
    if not known:
        return None

    # All-or-nothing: once any assignment carries a percent, plain siblings get 0.
    if any(isinstance(a, WeightedShare) for a in known):
        portions = [non_negative(a.percent) if isinstance(a, WeightedShare) else 0.0 for a in known]
    else:
        portions = [1.0] * len(known)

    total = sum(portions)
    if total <= 0:
        portions = [1.0] * len(known)
        total = float(len(known))

    fractions = [0.0] * party_count
    for assignment, portion in zip(known, portions, strict=True):
        fractions[party_index[assignment.party_id]] += portion / total
    return fractions


def _index_parties(parties: Sequence[Party]) -> Dict[str, int]:
    index: Dict[str, int] = {}
    for idx, party in enumerate(parties):
        index.setdefault(party.id, idx)
    return index


def _settle_totals(
    total_units: Sequence[int],
    raw_units: Sequence[float],
    grand_units: int,
    step: Optional[float],
    eligible: Sequence[bool],
    floors: Optional[Sequence[int]] = None,
) -> List[int]:
    """
    Reconcile per-party totals against the grand total, optionally snapping
    each total to the nearest step first (e.g. 10 cents for cash).

    Leftover units only go to eligible parties, ranked by how far their
    candidate total sits from raw_units (their unrounded share of the grand
    total); ties keep input order. A party gives up units down to its floor
    first and never below 0.
    """
    step_units = to_minor_units(non_negative(step)) if step else 0
    if step_units > 1:
        settled = [int(round_to_step(float(units), step_units)) for units in total_units]
    else:
        settled = list(total_units)

    diff = int(grand_units) - sum(settled)
    pool = [idx for idx, ok in enumerate(eligible) if ok] or list(range(len(settled)))
    if diff == 0 or not pool:
        return settled

    unit = 1 if diff > 0 else -1
    leftovers = {idx: round(finite_or_zero(raw_units[idx]) - settled[idx], _LEFTOVER_PLACES) for idx in pool}
    pool.sort(key=lambda idx: -leftovers[idx] * unit)

    remaining = abs(diff)
    for bound in (floors or [0] * len(settled), [0] * len(settled)):
        while remaining:
            moved = False
            for idx in pool:
                if not remaining:
                    break
                if unit < 0 and settled[idx] <= bound[idx]:
                    continue
                settled[idx] += unit
                remaining -= 1
                moved = True
            if not moved:
                break
    return settled


def _fold_corrections(
    corrections: Sequence[int],
    item_units: List[int],
    service_units: List[int],
    tax_units: List[int],
    service_charge_rate: float,
    tax_rate: float,
) -> None:
    """
    Push total-level corrections into the components so items + service
    charge + tax still equals each party's total.

    Additions land in tax (service charge when tax is 0, items when both
    rates are 0). Removals drain the same order and spill into the next
    component rather than going below 0. Zero-rate components stay at 0.
    """
    targets = []
    if tax_rate != 0:
        targets.append(tax_units)
    if service_charge_rate != 0:
        targets.append(service_units)
    targets.append(item_units)

    for idx, delta in enumerate(corrections):
        if delta >= 0:
            targets[0][idx] += delta
            continue
        owed = -delta
        for target in targets:
            taken = min(owed, target[idx])
            target[idx] -= taken
            owed -= taken


def _build_breakdown(
    parties: Sequence[Party],
    item_units: Sequence[int],
    service_units: Sequence[int],
    tax_units: Sequence[int],
    currency: str,
) -> SplitBreakdown:
    shares = tuple(
        PartyShare(
            party_id=party.id,
            items=from_minor_units(i),
            service_charge=from_minor_units(s),
            tax=from_minor_units(t),
            total=from_minor_units(i + s + t),
        )
        for party, i, s, t in zip(parties, item_units, service_units, tax_units, strict=True)
    )
    return SplitBreakdown(
        currency=currency,
        before_charge=from_minor_units(sum(item_units)),
        service_charge_total=from_minor_units(sum(service_units)),
        tax_total=from_minor_units(sum(tax_units)),
        grand_total=from_minor_units(sum(item_units) + sum(service_units) + sum(tax_units)),
        per_party=shares,
    )


def split_by_items(
    items: Iterable[LineItem],
    parties: Sequence[Party],
    service_charge_rate: float,
    tax_rate: float,
    options: Optional[SplitOptions] = None,
) -> SplitBreakdown:
    """
    Split an itemized bill.

    Steps:
    - Each item goes to its assigned parties (evenly, or by share percent).
      Items with no usable assignment are split across all parties by
      party weight.
    - Item shares, service charge and tax are each rounded with
      largest-remainder distribution against the aggregate from forward().
    - Optional step rounding of totals; corrections land in tax and only
      touch parties that owe something.

    Unknown party ids are ignored. No parties means an all-zero breakdown.
    """
    options = options or SplitOptions()
    parties = list(parties)
    mode = options.mode
    if not parties:
        return _build_breakdown([], [], [], [], options.currency)

    sc_rate = finite_or_zero(service_charge_rate)
    tx_rate = finite_or_zero(tax_rate)
    party_index = _index_parties(parties)
    fallback = weight_fractions([p.weight for p in parties])

    raw_shares = [0.0] * len(parties)
    items_total = 0.0
    for item in items:
        line_total = item.line_total
        if line_total <= 0:
            continue
        items_total += line_total
        fractions = _assignment_fractions(item, party_index, len(parties)) or fallback
        for idx, fraction in enumerate(fractions):
            raw_shares[idx] += line_total * fraction

    fees = forward(items_total, sc_rate, tx_rate, mode)

    item_units = distribute_units(
        [share * _FACTOR for share in raw_shares],
        to_minor_units(fees.before),
        mode,
    )

    if items_total > _EPSILON:
        service_raw = [share / items_total * fees.service_charge for share in raw_shares]
    else:
        service_raw = [0.0] * len(parties)
    service_units = distribute_units(
        [value * _FACTOR for value in service_raw],
        to_minor_units(fees.service_charge),
        mode,
    )

    tax_units = distribute_units(
        [(i + s) * tx_rate for i, s in zip(item_units, service_units, strict=True)],
        to_minor_units(fees.tax),
        mode,
    )

    total_units = [i + s + t for i, s, t in zip(item_units, service_units, tax_units, strict=True)]
    if options.round_to_step:
        settled = _settle_totals(
            total_units,
            [float(units) for units in total_units],
            to_minor_units(fees.total),
            options.round_to_step,
            [units > 0 for units in total_units],
        )
        corrections = [new - old for new, old in zip(settled, total_units, strict=True)]
        _fold_corrections(corrections, item_units, service_units, tax_units, sc_rate, tx_rate)

    return _build_breakdown(parties, item_units, service_units, tax_units, options.currency)


def split_by_weight(
    total: float,
    parties: Sequence[Party],
    weights: Optional[Mapping[str, float]] = None,
    service_charge_rate: float = 0.0,
    tax_rate: float = 0.0,
    options: Optional[SplitOptions] = None,
    *,
    fees_included: bool = True,
) -> SplitBreakdown:
    """
    Split a bill known only by its total, proportionally to weights.

    weights maps party id -> relative weight; a party missing from the
    mapping uses its own Party.weight. With fees_included=False, `total`
    is a pre-fee subtotal and fees are added first.

    Each party's fees are computed from their own base amount. Leftover
    pennies against the grand total go to the parties furthest from their
    exact share of it and land in tax; zero-weight parties never get one.
    """
    options = options or SplitOptions()
    parties = list(parties)
    mode = options.mode
    if not parties:
        return _build_breakdown([], [], [], [], options.currency)

    sc_rate = finite_or_zero(service_charge_rate)
    tx_rate = finite_or_zero(tax_rate)
    amount = non_negative(total)
    if not fees_included:
        amount = forward(amount, sc_rate, tx_rate, mode).total

    fees = reverse(amount, sc_rate, tx_rate, mode)
    weights = weights or {}
    fractions = weight_fractions([weights.get(p.id, p.weight) for p in parties])

    item_units = distribute_units(
        [fees.before * fraction * _FACTOR for fraction in fractions],
        to_minor_units(fees.before),
        mode,
    )

    own_fees = [forward(from_minor_units(units), sc_rate, tx_rate, mode) for units in item_units]
    service_units = [to_minor_units(f.service_charge) for f in own_fees]
    tax_units = [to_minor_units(f.tax) for f in own_fees]

    total_units = [to_minor_units(f.total) for f in own_fees]
    grand_units = to_minor_units(fees.total)
    # Parties with a fee to give back keep their base intact.
    floors = list(item_units) if sc_rate != 0 or tx_rate != 0 else None
    settled = _settle_totals(
        total_units,
        [grand_units * fraction for fraction in fractions],
        grand_units,
        options.round_to_step,
        [fraction > 0 for fraction in fractions],
        floors,
    )
    corrections = [new - old for new, old in zip(settled, total_units, strict=True)]
    _fold_corrections(corrections, item_units, service_units, tax_units, sc_rate, tx_rate)

    return _build_breakdown(parties, item_units, service_units, tax_units, options.currency)
