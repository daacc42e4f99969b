"""Screen layout: terminal size in, panel rectangles out.

    ┌──────────── top half ─────────────┐
    │ CPU 40% │ RAM 25% │ Thermal 35%   │
    ├────────── bottom half ────────────┤
    │ Net 20% │ Disk 20% │ Processes 60%│
    └───────────────────────────────────┘
     status bar (last row)
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import NamedTuple

TOP_SPLIT = (40, 25, 35)
BOTTOM_SPLIT = (20, 20, 60)


class Rect(NamedTuple):
    x: int
    y: int
    width: int
    height: int

    @property
    def empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


@dataclass(frozen=True)
class Regions:
    cpu: Rect
    ram: Rect
    thermal: Rect
    network: Rect
    disk: Rect
    process: Rect
    status: Rect


def split(total: int, percents: Sequence[int]) -> list[int]:
    """Divide *total* cells by percentage; the last part absorbs rounding."""
    sizes = [total * p // 100 for p in percents[:-1]]
    sizes.append(total - sum(sizes))
    return sizes


def _row(x: int, y: int, width: int, height: int, percents: Sequence[int]) -> list[Rect]:
    rects = []
    for w in split(width, percents):
        rects.append(Rect(x, y, w, height))
        x += w
    return rects


def compute(area: Rect) -> Regions:
    """Split *area* into the dashboard panels. Pure; call it every frame."""
    width = max(0, area.width)
    height = max(0, area.height)
    status_h = 1 if height >= 2 else 0
    body_h = height - status_h
    top_h = body_h // 2
    bottom_h = body_h - top_h

    cpu, ram, thermal = _row(area.x, area.y, width, top_h, TOP_SPLIT)
    network, disk, process = _row(area.x, area.y + top_h, width, bottom_h, BOTTOM_SPLIT)
    status = Rect(area.x, area.y + body_h, width, status_h)
    return Regions(
        cpu=cpu,
        ram=ram,
        thermal=thermal,
        network=network,
        disk=disk,
        process=process,
        status=status,
    )
