"""Classification policy: exclusion rule, ordered category rules, category metadata.

A policy is plain immutable data. Rules are evaluated top to bottom and the
first match wins; the category list is separate and fixes the order in which
results are reported, so evaluation priority and display order can differ
(the default policy tests exact colours before the Warm band but reports
Warm first).

Each rule offers two views of the same predicate:
  matches(r, g, b)   one pixel, pure Python
  mask(rgb, hsv)     an (N, 3) uint8 array, returns an (N,) bool array

Policy documents (JSON) look like:

    {
      "categories": [{"id": "warm", "name": "Warm", "display_color": "#ed1c24"}, ...],
      "rules": [
        {"kind": "exact", "category": "dark_green", "rgb": "#009245"},
        {"kind": "hsv", "category": "warm", "hue": [0, 75], "min_saturation": 0.55, "min_value": 0.35}
      ],
      "fallback": "other",
      "exclusion": {"min_alpha": 255, "backgrounds": ["#ff00ff"],
                    "border": {"red_above": 150, "blue_above": 150, "green_below": 60}}
    }

Colours may be '#rrggbb' strings or [r, g, b] lists.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

import numpy as np

from map_ratio.core.errors import InvalidPolicyError
from map_ratio.core.palette import RGB, hex_to_rgb, rgb_to_hex, rgb_to_hsv

HsvArrays = tuple[np.ndarray, np.ndarray, np.ndarray]


def _check_channel(value: int, what: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 255:
        raise InvalidPolicyError(f'{what} must be an integer in 0..255, got {value!r}')


def _check_rgb(rgb: RGB, what: str) -> None:
    if len(rgb) != 3:
        raise InvalidPolicyError(f'{what} must have 3 channels, got {rgb!r}')
    for channel in rgb:
        _check_channel(channel, what)


def _check_unit(value: float, what: str) -> None:
    if not 0.0 <= value <= 1.0:
        raise InvalidPolicyError(f'{what} must be within [0, 1], got {value!r}')


@dataclass(frozen=True)
class Category:
    """Output metadata for one category."""

    id: str
    name: str
    display_color: str  # hex


@dataclass(frozen=True)
class ExactColourRule:
    """Bit-exact RGB equality."""

    kind: ClassVar[str] = 'exact'
    needs_hsv: ClassVar[bool] = False

    category: str
    rgb: RGB

    def __post_init__(self) -> None:
        object.__setattr__(self, 'rgb', tuple(self.rgb))
        _check_rgb(self.rgb, f'rule {self.category!r} rgb')

    def matches(self, r: int, g: int, b: int) -> bool:
        return (r, g, b) == self.rgb

    def mask(self, rgb: np.ndarray, hsv: HsvArrays | None = None) -> np.ndarray:
        target = np.array(self.rgb, dtype=np.uint8)
        return np.all(rgb == target, axis=1)


@dataclass(frozen=True)
class HsvBandRule:
    """Literal hue interval plus saturation/value floors.

    The hue interval is inclusive at both ends and never wraps past 360:
    a band of (0, 75) does not contain 359.
    """

    kind: ClassVar[str] = 'hsv'
    needs_hsv: ClassVar[bool] = True

    category: str
    hue_min: float
    hue_max: float
    min_saturation: float = 0.0
    min_value: float = 0.0

    def __post_init__(self) -> None:
        for bound in (self.hue_min, self.hue_max):
            if not 0.0 <= bound < 360.0:
                raise InvalidPolicyError(f'rule {self.category!r} hue bound must be within [0, 360), got {bound!r}')
        if self.hue_min > self.hue_max:
            raise InvalidPolicyError(
                f'rule {self.category!r} hue range is reversed ({self.hue_min} > {self.hue_max}); '
                'bands do not wrap, split them into two rules'
            )
        _check_unit(self.min_saturation, f'rule {self.category!r} min_saturation')
        _check_unit(self.min_value, f'rule {self.category!r} min_value')

    def matches(self, r: int, g: int, b: int) -> bool:
        h, s, v = rgb_to_hsv(r, g, b)
        return self.hue_min <= h <= self.hue_max and s >= self.min_saturation and v >= self.min_value

    def mask(self, rgb: np.ndarray, hsv: HsvArrays | None = None) -> np.ndarray:
        if hsv is None:
            raise ValueError('HsvBandRule.mask needs precomputed hsv arrays')
        h, s, v = hsv
        return (h >= self.hue_min) & (h <= self.hue_max) & (s >= self.min_saturation) & (v >= self.min_value)


Rule = Union[ExactColourRule, HsvBandRule]


@dataclass(frozen=True)
class BorderRule:
    """Strict-inequality band catching anti-aliased pink/purple outlines."""

    red_above: int = 150
    blue_above: int = 150
    green_below: int = 60

    def __post_init__(self) -> None:
        for name in ('red_above', 'blue_above', 'green_below'):
            _check_channel(getattr(self, name), f'border {name}')

    def matches(self, r: int, g: int, b: int) -> bool:
        return r > self.red_above and b > self.blue_above and g < self.green_below

    def mask(self, rgb: np.ndarray) -> np.ndarray:
        return (rgb[:, 0] > self.red_above) & (rgb[:, 2] > self.blue_above) & (rgb[:, 1] < self.green_below)


@dataclass(frozen=True)
class ExclusionRule:
    """Pixels that are background rather than data.

    Checked before any category rule: first opacity (alpha below min_alpha),
    then exact background colours, then the border band.
    """

    min_alpha: int = 255
    backgrounds: tuple[RGB, ...] = ((255, 0, 255),)
    border: BorderRule | None = field(default_factory=BorderRule)

    def __post_init__(self) -> None:
        _check_channel(self.min_alpha, 'exclusion min_alpha')
        object.__setattr__(self, 'backgrounds', tuple(tuple(bg) for bg in self.backgrounds))
        for bg in self.backgrounds:
            _check_rgb(bg, 'exclusion background')

    def excludes(self, r: int, g: int, b: int, a: int) -> bool:
        if a < self.min_alpha:
            return True
        if (r, g, b) in self.backgrounds:
            return True
        return self.border is not None and self.border.matches(r, g, b)

    def mask(self, rgb: np.ndarray, alpha: np.ndarray) -> np.ndarray:
        excluded = alpha < self.min_alpha
        for bg in self.backgrounds:
            excluded |= np.all(rgb == np.array(bg, dtype=np.uint8), axis=1)
        if self.border is not None:
            excluded |= self.border.mask(rgb)
        return excluded


@dataclass(frozen=True)
class ClassificationPolicy:
    """Exclusion rule + ordered category rules + output category metadata."""

    categories: tuple[Category, ...]
    rules: tuple[Rule, ...]
    fallback: str
    exclusion: ExclusionRule = field(default_factory=ExclusionRule)

    def __post_init__(self) -> None:
        object.__setattr__(self, 'categories', tuple(self.categories))
        object.__setattr__(self, 'rules', tuple(self.rules))

        seen: set[str] = set()
        for cid in self.category_ids:
            if cid in seen:
                raise InvalidPolicyError(f'duplicate category id: {cid!r}')
            seen.add(cid)
        if self.fallback not in seen:
            raise InvalidPolicyError(f'fallback category {self.fallback!r} is not declared in categories')
        for rule in self.rules:
            if rule.category not in seen:
                raise InvalidPolicyError(f'rule refers to undeclared category {rule.category!r}')

    @property
    def category_ids(self) -> tuple[str, ...]:
        return tuple(c.id for c in self.categories)

    @property
    def needs_hsv(self) -> bool:
        return any(rule.needs_hsv for rule in self.rules)


# Default palette: strict map-legend colours first, then the Warm band.
WARM = Category('warm', 'Warm (Red/Orange/Yellow)', '#ed1c24')
DARK_GREEN = Category('dark_green', 'Dark Green (#009245)', '#009245')
BLUE = Category('blue', 'Blue (#0000ff)', '#0000ff')
NEON_GREEN = Category('neon_green', 'Neon Green (#00ff00)', '#00ff00')
GREY = Category('grey', 'Grey (#4d4d4d)', '#4d4d4d')
OTHER = Category('other', 'Other / Unclassified', '#9ca3af')

DEFAULT_POLICY = ClassificationPolicy(
    categories=(WARM, DARK_GREEN, BLUE, NEON_GREEN, GREY, OTHER),
    rules=(
        ExactColourRule(DARK_GREEN.id, (0, 146, 69)),
        ExactColourRule(BLUE.id, (0, 0, 255)),
        ExactColourRule(NEON_GREEN.id, (0, 255, 0)),
        ExactColourRule(GREY.id, (77, 77, 77)),
        HsvBandRule(WARM.id, hue_min=0.0, hue_max=75.0, min_saturation=0.55, min_value=0.35),
    ),
    fallback=OTHER.id,
    exclusion=ExclusionRule(),
)


# -- policy documents -------------------------------------------------------


def _parse_colour(value: Any, what: str) -> RGB:
    if isinstance(value, str):
        rgb = hex_to_rgb(value)
        if rgb is None:
            raise InvalidPolicyError(f'{what}: invalid hex colour {value!r}')
        return rgb
    if isinstance(value, (list, tuple)):
        rgb = tuple(value)
        _check_rgb(rgb, what)
        return rgb
    raise InvalidPolicyError(f'{what}: expected hex string or [r, g, b], got {value!r}')


def _objects(items: Any, what: str) -> list[dict[str, Any]]:
    if not isinstance(items, (list, tuple)):
        raise InvalidPolicyError(f'{what} entries must be a list, got {items!r}')
    for item in items:
        if not isinstance(item, dict):
            raise InvalidPolicyError(f'{what} must be an object, got {item!r}')
    return list(items)


def _parse_rule(doc: dict[str, Any]) -> Rule:
    kind = doc.get('kind')
    category = doc.get('category')
    if not isinstance(category, str):
        raise InvalidPolicyError(f'rule is missing a category: {doc!r}')

    if kind == ExactColourRule.kind:
        return ExactColourRule(category, _parse_colour(doc.get('rgb'), f'rule {category!r} rgb'))

    if kind == HsvBandRule.kind:
        if 'hue' not in doc:
            raise InvalidPolicyError(f'rule {category!r} needs a hue range [min, max]')
        hue = doc['hue']
        if not isinstance(hue, (list, tuple)) or len(hue) != 2:
            raise InvalidPolicyError(f'rule {category!r} hue must be [min, max], got {hue!r}')
        try:
            hue_min, hue_max = float(hue[0]), float(hue[1])
            min_saturation = float(doc.get('min_saturation', 0.0))
            min_value = float(doc.get('min_value', 0.0))
        except (TypeError, ValueError) as e:
            raise InvalidPolicyError(f'rule {category!r}: thresholds must be numbers: {e}') from e
        return HsvBandRule(category, hue_min, hue_max, min_saturation=min_saturation, min_value=min_value)

    raise InvalidPolicyError(f'unknown rule kind {kind!r} (expected "exact" or "hsv")')


def _parse_exclusion(doc: dict[str, Any]) -> ExclusionRule:
    if not isinstance(doc, dict):
        raise InvalidPolicyError(f'exclusion must be an object, got {doc!r}')
    border_doc = doc.get('border', {})
    border = None
    if border_doc is not None:
        if not isinstance(border_doc, dict):
            raise InvalidPolicyError(f'exclusion border must be an object or null, got {border_doc!r}')
        border = BorderRule(
            red_above=border_doc.get('red_above', 150),
            blue_above=border_doc.get('blue_above', 150),
            green_below=border_doc.get('green_below', 60),
        )
    raw_backgrounds = doc.get('backgrounds', ['#ff00ff'])
    if not isinstance(raw_backgrounds, (list, tuple)):
        raise InvalidPolicyError(f'exclusion backgrounds must be a list of colours, got {raw_backgrounds!r}')
    backgrounds = tuple(_parse_colour(bg, 'exclusion background') for bg in raw_backgrounds)
    return ExclusionRule(min_alpha=doc.get('min_alpha', 255), backgrounds=backgrounds, border=border)


def policy_from_dict(doc: dict[str, Any]) -> ClassificationPolicy:
    """Build a policy from a decoded JSON document."""
    if not isinstance(doc, dict):
        raise InvalidPolicyError(f'policy document must be an object, got {type(doc).__name__}')
    try:
        categories = tuple(
            Category(id=c['id'], name=c.get('name', c['id']), display_color=c.get('display_color', '#9ca3af'))
            for c in _objects(doc['categories'], 'category')
        )
        rules = tuple(_parse_rule(r) for r in _objects(doc.get('rules', []), 'rule'))
        fallback = doc['fallback']
    except (KeyError, TypeError) as e:
        raise InvalidPolicyError(f'malformed policy document: {e!r}') from e

    exclusion = _parse_exclusion(doc.get('exclusion') or {})
    return ClassificationPolicy(categories=categories, rules=rules, fallback=fallback, exclusion=exclusion)


def _rule_to_dict(rule: Rule) -> dict[str, Any]:
    if isinstance(rule, ExactColourRule):
        return {'kind': rule.kind, 'category': rule.category, 'rgb': rgb_to_hex(rule.rgb)}
    return {
        'kind': rule.kind,
        'category': rule.category,
        'hue': [rule.hue_min, rule.hue_max],
        'min_saturation': rule.min_saturation,
        'min_value': rule.min_value,
    }


def policy_to_dict(policy: ClassificationPolicy) -> dict[str, Any]:
    """Inverse of policy_from_dict."""
    exclusion = policy.exclusion
    border = exclusion.border
    return {
        'categories': [{'id': c.id, 'name': c.name, 'display_color': c.display_color} for c in policy.categories],
        'rules': [_rule_to_dict(r) for r in policy.rules],
        'fallback': policy.fallback,
        'exclusion': {
            'min_alpha': exclusion.min_alpha,
            'backgrounds': [rgb_to_hex(bg) for bg in exclusion.backgrounds],
            'border': None
            if border is None
            else {'red_above': border.red_above, 'blue_above': border.blue_above, 'green_below': border.green_below},
        },
    }


def load_policy(path: str) -> ClassificationPolicy:
    """Load a policy from a JSON file on disk."""
    with open(path, encoding='utf-8') as f:
        try:
            doc = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InvalidPolicyError(f'{path}: not valid JSON: {e}') from e
    return policy_from_dict(doc)
