"""Pixel classification engine.

classify() walks every pixel of a Bitmap once and sorts it into exactly one
bucket: excluded, or one category of the policy. Per pixel, in order:

  1. alpha below the policy's min_alpha        → excluded
  2. background colour or border band          → excluded
  3. category rules in declared order          → first match wins
  4. nothing matched                           → the fallback category

Counting is vectorised with numpy over contiguous row bands. Bands share
nothing but the read-only bitmap and policy, so with workers > 1 they are
counted on a thread pool and the partial counts summed once every band has
finished. A failure in any band fails the whole call; partial counts are
never returned.

classify_pixel() is the one-pixel version of the same decision, useful for
probing a policy.
"""

from concurrent.futures import ThreadPoolExecutor

import numpy as np

from map_ratio.core.errors import MalformedInputError
from map_ratio.core.log import get_logger
from map_ratio.core.palette import rgb_to_hsv_array
from map_ratio.core.policy import DEFAULT_POLICY, ClassificationPolicy
from map_ratio.core.types import CHANNELS, AnalysisResult, Bitmap, CategoryStat

log = get_logger(__name__)

EXCLUDED = '_excluded'  # counter key; never a category id in output

# Upper bound on pixels per band, keeps temporary arrays small on huge images
BAND_PIXELS = 1 << 20


def classify_pixel(
    r: int, g: int, b: int, a: int = 255, policy: ClassificationPolicy = DEFAULT_POLICY
) -> str | None:
    """Return the category id for one pixel, or None if it is excluded."""
    if policy.exclusion.excludes(r, g, b, a):
        return None
    for rule in policy.rules:
        if rule.matches(r, g, b):
            return rule.category
    return policy.fallback


def _validate(bitmap: Bitmap) -> None:
    if bitmap.width < 0 or bitmap.height < 0:
        raise MalformedInputError(f'negative dimensions: {bitmap.width}x{bitmap.height}')
    expected = bitmap.width * bitmap.height * CHANNELS
    actual = len(bitmap.data)
    if actual != expected:
        raise MalformedInputError(
            f'pixel buffer is {actual} bytes, expected {expected} for {bitmap.width}x{bitmap.height} RGBA'
        )


def _row_bands(width: int, height: int, workers: int) -> list[tuple[int, int]]:
    """Split rows into contiguous [start, stop) bands.

    At least one band per worker (when there are enough rows), and no band
    larger than BAND_PIXELS.
    """
    if width == 0 or height == 0:
        return []
    max_rows = max(1, BAND_PIXELS // width)
    rows = min(max_rows, -(-height // workers))
    return [(start, min(start + rows, height)) for start in range(0, height, rows)]


def _count_pixels(pixels: np.ndarray, policy: ClassificationPolicy) -> dict[str, int]:
    """Count one (N, 4) uint8 slice. Returns {category_id: n, EXCLUDED: n}."""
    counts = dict.fromkeys(policy.category_ids, 0)
    counts[EXCLUDED] = 0
    if len(pixels) == 0:
        return counts

    rgb = pixels[:, :3]
    excluded = policy.exclusion.mask(rgb, pixels[:, 3])
    counts[EXCLUDED] = int(np.count_nonzero(excluded))

    remaining = ~excluded
    hsv = rgb_to_hsv_array(rgb) if policy.needs_hsv else None
    for rule in policy.rules:
        if not remaining.any():
            break
        hit = remaining & rule.mask(rgb, hsv)
        counts[rule.category] += int(np.count_nonzero(hit))
        remaining &= ~hit

    counts[policy.fallback] += int(np.count_nonzero(remaining))
    return counts


def _merge(partials: list[dict[str, int]], keys: list[str]) -> dict[str, int]:
    totals = dict.fromkeys(keys, 0)
    for part in partials:
        for key, n in part.items():
            totals[key] += n
    return totals


def classify(
    bitmap: Bitmap,
    policy: ClassificationPolicy = DEFAULT_POLICY,
    workers: int = 1,
) -> AnalysisResult:
    """Classify every pixel of ``bitmap`` and aggregate counts and percentages.

    Raises MalformedInputError if the buffer does not hold exactly
    width * height RGBA pixels; nothing is counted in that case.
    """
    _validate(bitmap)
    if workers < 1:
        raise ValueError(f'workers must be >= 1, got {workers}')

    pixels = np.frombuffer(bitmap.data, dtype=np.uint8).reshape(-1, CHANNELS)
    width = bitmap.width
    bands = _row_bands(width, bitmap.height, workers)
    log.debug('classify %dx%d: %d band(s), %d worker(s)', width, bitmap.height, len(bands), workers)

    def count_band(band: tuple[int, int]) -> dict[str, int]:
        start, stop = band
        return _count_pixels(pixels[start * width : stop * width], policy)

    if workers == 1 or len(bands) <= 1:
        partials = [count_band(band) for band in bands]
    else:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            partials = list(pool.map(count_band, bands))

    counts = _merge(partials, [*policy.category_ids, EXCLUDED])
    total = bitmap.pixel_count
    excluded = counts[EXCLUDED]
    processed = total - excluded
    denominator = max(processed, 1)

    stats = tuple(
        CategoryStat(
            id=cat.id,
            name=cat.name,
            display_color=cat.display_color,
            count=counts[cat.id],
            percentage=100.0 * counts[cat.id] / denominator,
        )
        for cat in policy.categories
    )
    return AnalysisResult(
        width=bitmap.width,
        height=bitmap.height,
        total_pixels=total,
        excluded_pixels=excluded,
        processed_pixels=processed,
        categories=stats,
    )
