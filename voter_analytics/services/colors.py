"""
Deterministic chart colors.

The same (name, category type, theme) always yields the same color, in this
process and the next: everything below is a pure function of its inputs.
"""

from __future__ import annotations

from typing import Dict, List, Literal, Sequence

CategoryType = Literal["tactics", "contacts", "not_reached", "teams", "general"]
Theme = Literal["light", "dark"]

GOLDEN_ANGLE = 137.508

PALETTES: Dict[str, Dict[str, List[str]]] = {
    "tactics": {
        "light": [
            "#10B981", "#059669", "#047857", "#065F46", "#064E3B",  # greens
            "#3B82F6", "#1D4ED8", "#1E40AF", "#1E3A8A", "#1D4D8B",  # blues
            "#8B5CF6", "#7C3AED", "#6D28D9", "#5B21B6", "#553C9A",  # purples
            "#F59E0B", "#D97706", "#B45309", "#92400E", "#78350F",  # ambers
        ],
        "dark": [
            "#34D399", "#10B981", "#059669", "#047857", "#065F46",
            "#60A5FA", "#3B82F6", "#1D4ED8", "#1E40AF", "#1E3A8A",
            "#A78BFA", "#8B5CF6", "#7C3AED", "#6D28D9", "#5B21B6",
            "#FBBF24", "#F59E0B", "#D97706", "#B45309", "#92400E",
        ],
    },
    "contacts": {
        "light": [
            "#3B82F6", "#1D4ED8", "#1E40AF",  # blues
            "#EF4444", "#DC2626", "#B91C1C",  # reds
            "#A855F7", "#9333EA", "#7C3AED",  # purples
            "#10B981", "#059669", "#047857",  # greens
            "#F59E0B", "#D97706", "#B45309",  # ambers
            "#EC4899", "#DB2777", "#BE185D",  # pinks
        ],
        "dark": [
            "#60A5FA", "#3B82F6", "#2563EB",
            "#F87171", "#EF4444", "#DC2626",
            "#C084FC", "#A855F7", "#9333EA",
            "#34D399", "#10B981", "#059669",
            "#FBBF24", "#F59E0B", "#D97706",
            "#F472B6", "#EC4899", "#DB2777",
        ],
    },
    "not_reached": {
        "light": [
            "#F97316", "#EA580C", "#C2410C", "#9A3412", "#7C2D12",  # oranges
            "#EF4444", "#DC2626", "#B91C1C", "#991B1B", "#7F1D1D",  # reds
            "#F59E0B", "#D97706", "#B45309", "#92400E", "#78350F",  # ambers
        ],
        "dark": [
            "#FB923C", "#F97316", "#EA580C", "#C2410C", "#9A3412",
            "#F87171", "#EF4444", "#DC2626", "#B91C1C", "#991B1B",
            "#FBBF24", "#F59E0B", "#D97706", "#B45309", "#92400E",
        ],
    },
    "teams": {
        "light": [
            "#10B981", "#059669", "#047857", "#065F46", "#064E3B",
            "#3B82F6", "#1D4ED8", "#1E40AF", "#1E3A8A", "#1D4D8B",
            "#8B5CF6", "#7C3AED", "#6D28D9", "#5B21B6", "#553C9A",
            "#F59E0B", "#D97706", "#B45309", "#92400E", "#78350F",
            "#EC4899", "#DB2777", "#BE185D", "#9D174D", "#831843",
        ],
        "dark": [
            "#34D399", "#10B981", "#059669", "#047857", "#065F46",
            "#60A5FA", "#3B82F6", "#1D4ED8", "#1E40AF", "#1E3A8A",
            "#A78BFA", "#8B5CF6", "#7C3AED", "#6D28D9", "#5B21B6",
            "#FBBF24", "#F59E0B", "#D97706", "#B45309", "#92400E",
            "#F472B6", "#EC4899", "#DB2777", "#BE185D", "#9D174D",
        ],
    },
    "general": {
        "light": [
            "#3B82F6", "#10B981", "#F59E0B", "#EF4444", "#8B5CF6",
            "#EC4899", "#06B6D4", "#84CC16", "#F97316", "#6366F1",
            "#14B8A6", "#F43F5E", "#8B5A2B", "#0EA5E9", "#A3A3A3",
            "#22C55E", "#D946EF", "#FF6B6B", "#4ECDC4", "#45B7D1",
        ],
        "dark": [
            "#60A5FA", "#34D399", "#FBBF24", "#F87171", "#A78BFA",
            "#F472B6", "#22D3EE", "#A3E635", "#FB923C", "#818CF8",
            "#2DD4BF", "#FB7185", "#D4A574", "#0EA5E9", "#D1D5DB",
            "#4ADE80", "#E879F9", "#FF8E8E", "#7EDDD6", "#65C3E8",
        ],
    },
}


def palette(category_type: str = "general", theme: str = "light") -> List[str]:
    by_theme = PALETTES.get(category_type) or PALETTES["general"]
    return by_theme.get(theme) or by_theme["light"]


def hash_name(name: str) -> int:
    """31-multiplier string hash wrapped to signed 32 bits, then made non-negative."""
    h = 0
    for ch in name:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def hsl_color(index: int, theme: str = "light") -> str:
    saturation, lightness = (70, 50) if theme == "light" else (80, 65)
    hue = (index * GOLDEN_ANGLE) % 360
    return f"hsl({round(hue)}, {saturation}%, {lightness}%)"


def category_color(name: str, category_type: str = "general", theme: str = "light") -> str:
    colors = palette(category_type, theme)
    return colors[hash_name((name or "").strip().lower()) % len(colors)]


def generate_palette(
    categories: Sequence[str],
    category_type: str = "general",
    theme: str = "light",
) -> Dict[str, str]:
    """Positional assignment: predefined slots first, golden-angle HSL for the overflow."""
    colors = palette(category_type, theme)
    out: Dict[str, str] = {}
    for i, name in enumerate(categories):
        out[name] = colors[i] if i < len(colors) else hsl_color(i - len(colors), theme)
    return out


def assign_colors(
    names: Sequence[str],
    category_type: str = "general",
    theme: str = "light",
) -> Dict[str, str]:
    """
    Hash-keyed assignment that never gives two names in the same chart the
    same predefined color: a taken slot probes forward to the next free one,
    and once every slot is taken names get golden-angle HSL colors.
    """
    colors = palette(category_type, theme)
    taken: set[int] = set()
    out: Dict[str, str] = {}
    overflow = 0

    for name in names:
        if name in out:
            continue
        if len(taken) >= len(colors):
            out[name] = hsl_color(overflow, theme)
            overflow += 1
            continue
        slot = hash_name((name or "").strip().lower()) % len(colors)
        while slot in taken:
            slot = (slot + 1) % len(colors)
        taken.add(slot)
        out[name] = colors[slot]

    return out
