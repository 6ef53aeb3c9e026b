"""
Monthly losses worksheet for one MainClient.

Every interval contributes v = net_active * mf * pn / 1000 (MWh); positive values
are gross injection, negative values drawl. The MainClient can be rescaled to the
SLDC-approved figures, the difference against the SubClient sum is distributed
by weightage, and each SubClient's after-losses figures are split across its
PartClients by sharing percentage.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from services import config
from services.energy import check_polarity, parse_interval_date
from services.figures import EnergyProfile, Reading, parse_number, percent_of, round3

log = logging.getLogger(__name__)


@dataclass
class SubClientInput:
    snapshot: dict
    profile: EnergyProfile
    readings: list[Reading]
    parts: list[dict] = field(default_factory=list)
    meter_no: Optional[str] = None
    meter_type: Optional[str] = None


@dataclass
class IntervalRow:
    date: str
    time: str
    raw: float
    allocated: float = 0.0
    scaled: float = 0.0
    after: float = 0.0

    @property
    def key(self) -> str:
        return f"{self.date}__{self.time}"

    def to_doc(self) -> dict:
        return {
            "date": self.date,
            "time": self.time,
            "raw": self.raw,
            "allocated_group": self.allocated,
            "discom_scaled": self.scaled,
            "net_after_losses": self.after,
        }


# ---------- helpers ----------

def interval_values(readings: Iterable[Reading], profile: EnergyProfile, label: str = "") -> list[IntervalRow]:
    pn = check_polarity(profile.pn)
    rows: list[IntervalRow] = []
    for r in readings:
        net = r.bidirectional
        if net is None or not math.isfinite(net):
            continue
        if parse_interval_date(r.date) is None:
            log.warning("skipping interval with malformed date %r (%s)", r.date, label)
            continue
        v = net * profile.mf * pn / 1000
        rows.append(IntervalRow(date=r.date, time=r.interval_start or "", raw=v, allocated=v, scaled=v))
    return rows


def split_signed(values: Iterable[float]) -> tuple[float, float]:
    pos = neg = 0.0
    for v in values:
        if v > 0:
            pos += v
        else:
            neg += v
    return pos, neg


def sharing_fraction(part: Mapping, label: str = "") -> Optional[float]:
    """sharing_percentage / 100, or None when missing or outside 0..100."""
    pct = parse_number(part.get("sharing_percentage"))
    if pct is None or pct < 0 or pct > 100:
        log.warning("part client %s has unusable sharing percentage %r (%s)",
                    part.get("name"), part.get("sharing_percentage"), label)
        return None
    return pct / 100


def discom_credits(targets: Optional[Mapping]) -> dict[str, float]:
    raw = targets or {}
    out = {}
    for key in config.DISCOM_KEYS:
        num = parse_number(raw.get(key))
        out[key] = 0.0 if num is None else num
    return out


# ---------- allocation passes ----------

def _allocate_groups(main_rows: list[IntervalRow], sub_rows: Iterable[list[IntervalRow]]) -> None:
    """Spread each MainClient interval over the SubClient rows of the same date/time."""
    main_by_key = {row.key: row.scaled for row in main_rows}
    groups: dict[str, list[IntervalRow]] = {}
    for rows in sub_rows:
        for row in rows:
            groups.setdefault(row.key, []).append(row)

    for key, rows in groups.items():
        s = sum(r.raw for r in rows)
        target = main_by_key.get(key)
        if target is None or not s or not math.isfinite(s):
            for r in rows:
                r.allocated = r.raw
            continue
        for r in rows:
            r.allocated = r.raw + (r.raw / s) * (target - s)
        delta = target - sum(r.allocated for r in rows)
        if delta and math.isfinite(delta):
            rows[0].allocated += delta


def _rescale_positive(rows: list[IntervalRow]) -> None:
    """Scale positive rows so their sum equals the raw positive sum of the sub client."""
    positive = [r for r in rows if r.raw > 0]
    pos_e = sum(r.raw for r in positive)
    pos_f = sum(r.allocated for r in rows if r.allocated > 0)
    scale = pos_e / pos_f if pos_f else 1.0
    for r in positive:
        r.scaled = r.allocated * scale
    if positive and pos_e:
        positive[0].scaled += pos_e - sum(r.scaled for r in positive)
    for r in rows:
        if not r.raw > 0:
            r.scaled = r.raw


def _apply_after_losses(block: dict, rows: list[IntervalRow]) -> None:
    for r in rows:
        v = r.scaled
        pct = block["losses_injected_percent"] if v > 0 else block["losses_drawl_percent"]
        r.after = -((v * (pct / 100)) - v)
    _total_after_losses(block, rows)


def _total_after_losses(block: dict, rows: list[IntervalRow]) -> None:
    g_after, d_after = split_signed(r.after for r in rows)
    block["gross_injection_mwh_after_losses"] = g_after
    block["drawl_mwh_after_losses"] = d_after
    block["net_injection_mwh_after_losses"] = g_after + d_after


def _split_parts(block: dict, parts: list[dict], fractions: list[Optional[float]]) -> list[dict]:
    out = []
    for part, frac in zip(parts, fractions):
        pct = frac or 0.0
        out.append({
            **part,
            "share": pct,
            "gross_injection_mwh": block["gross_injection_mwh"] * pct,
            "drawl_mwh": block["drawl_mwh"] * pct,
            "net_injection_mwh": block["net_injection_mwh"] * pct,
            "weightage_gross_injecting": block["weightage_gross_injecting"] * pct,
            "weightage_gross_drawl": block["weightage_gross_drawl"] * pct,
            "losses_injected_units": block["losses_injected_units"] * pct,
            "losses_injected_percent": block["losses_injected_percent"],
            "losses_drawl_units": block["losses_drawl_units"] * pct,
            "losses_drawl_percent": block["losses_drawl_percent"],
            "gross_injection_mwh_after_losses": block["gross_injection_mwh_after_losses"] * pct,
            "drawl_mwh_after_losses": block["drawl_mwh_after_losses"] * pct,
            "net_injection_mwh_after_losses": (
                block["gross_injection_mwh_after_losses"] + block["drawl_mwh_after_losses"]
            ) * pct,
        })
    return out


# ---------- entry point ----------

def calculate_losses(
    main_profile: EnergyProfile,
    main_readings: Iterable[Reading],
    subs: list[SubClientInput],
    approved_injection: Optional[float] = None,
    approved_drawl: Optional[float] = None,
    discom_targets: Optional[Mapping] = None,
) -> dict:
    audit: dict = {}

    main_rows = interval_values(main_readings, main_profile, "main client")
    main_raw_pos, main_raw_neg = split_signed(r.raw for r in main_rows)
    audit["main_raw"] = {"pos": main_raw_pos, "neg": main_raw_neg}

    sub_rows = [interval_values(s.readings, s.profile, s.snapshot.get("name", "")) for s in subs]
    blocks = []
    for s, rows in zip(subs, sub_rows):
        gross, drawl = split_signed(r.raw for r in rows)
        blocks.append({
            **s.snapshot,
            "meter_no": s.meter_no,
            "meter_type": s.meter_type,
            "gross_injection_mwh": gross,
            "drawl_mwh": drawl,
            "net_injection_mwh": gross + drawl,
        })
    overall_pos = sum(b["gross_injection_mwh"] for b in blocks)
    overall_neg = sum(b["drawl_mwh"] for b in blocks)
    audit["subs_positive_sum"] = overall_pos
    audit["subs_negative_sum"] = overall_neg

    # MainClient rescaled to the SLDC approved figures
    f_pos = approved_injection / main_raw_pos if approved_injection is not None and main_raw_pos else 1.0
    f_neg = approved_drawl / main_raw_neg if approved_drawl is not None and main_raw_neg else 1.0
    audit["main_scale"] = {"f_pos": f_pos, "f_neg": f_neg}
    for r in main_rows:
        r.scaled = r.raw * (f_pos if r.raw > 0 else f_neg)
    main_gross, main_drawl = split_signed(r.scaled for r in main_rows)

    difference = {
        "diff_injected_units": overall_pos - main_gross,
        "diff_drawl_units": overall_neg - main_drawl,
    }

    _allocate_groups(main_rows, sub_rows)
    for rows in sub_rows:
        _rescale_positive(rows)

    fractions_per_sub = []
    for s in subs:
        fractions_per_sub.append([sharing_fraction(p, s.snapshot.get("name", "")) for p in s.parts])

    for block, rows in zip(blocks, sub_rows):
        block["weightage_gross_injecting"] = percent_of(block["gross_injection_mwh"], overall_pos)
        block["weightage_gross_drawl"] = percent_of(block["drawl_mwh"], overall_neg)
        block["losses_injected_units"] = difference["diff_injected_units"] * block["weightage_gross_injecting"] / 100
        block["losses_drawl_units"] = difference["diff_drawl_units"] * block["weightage_gross_drawl"] / 100
        block["losses_injected_percent"] = percent_of(block["losses_injected_units"], block["gross_injection_mwh"])
        block["losses_drawl_percent"] = percent_of(block["losses_drawl_units"], block["drawl_mwh"])
        _apply_after_losses(block, rows)

    # Positive after-losses rows matched to the credited DISCOM total
    credits = discom_credits(discom_targets)
    sum_targets = sum(credits.values())
    total_net_pos = sum(r.after for rows in sub_rows for r in rows if r.after > 0)
    if sum_targets > 0 and total_net_pos > 0:
        scale_net = sum_targets / total_net_pos
        audit["discom_net_scale"] = {
            "sum_discom_targets": sum_targets,
            "total_net_pos": total_net_pos,
            "scale_net": scale_net,
        }
        for block, rows in zip(blocks, sub_rows):
            for r in rows:
                if r.after > 0:
                    r.after *= scale_net
            _total_after_losses(block, rows)

    invalid_shares = []
    for s, block, rows, fractions in zip(subs, blocks, sub_rows, fractions_per_sub):
        block["part_clients"] = _split_parts(block, s.parts, fractions)
        block["intervals"] = [r.to_doc() for r in rows]
        invalid_shares.extend(p.get("name") for p, f in zip(s.parts, fractions) if f is None)

    sldc = {"approved_injection": approved_injection, "approved_drawl": approved_drawl}
    if approved_injection is not None:
        sldc["as_per_approved_injection"] = approved_injection - main_gross
    if approved_drawl is not None:
        sldc["as_per_approved_drawl"] = approved_drawl - main_drawl

    per_discom = {k: round3(v) for k, v in credits.items()}
    total_credited = sum(per_discom.values())
    sldc_inj = approved_injection if approved_injection is not None else total_credited

    return {
        "main_block": {
            "gross_injection_mwh": main_gross,
            "drawl_mwh": main_drawl,
            "net_injection_mwh": main_gross + main_drawl,
            "intervals": [{"date": r.date, "time": r.time, "raw": r.raw, "adjusted": r.scaled} for r in main_rows],
        },
        "sub_clients": blocks,
        "sub_overall": {
            "overall_gross_injected_units": overall_pos,
            "gross_drawl_units": overall_neg,
        },
        "difference": difference,
        "sldc": sldc,
        "discom_targets": credits,
        "per_discom_totals": per_discom,
        "excess_injection_ppa": round3(sldc_inj - total_credited),
        "energy_drawn_from_discom": approved_drawl if approved_drawl is not None else main_drawl,
        "audit": audit,
        "part_clients_with_invalid_share": invalid_shares,
    }
