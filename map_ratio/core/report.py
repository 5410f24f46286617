"""Report builder: text and JSON output for map-ratio results."""

import json
from typing import Any

from map_ratio.core.types import AnalysisResult


def format_text(result: AnalysisResult, image_path: str | None = None) -> str:
    """Format a result as a human-readable table."""
    lines = []
    dim = f'{result.width}×{result.height}'
    lines.append(f'map-ratio: {image_path} ({dim})' if image_path else f'map-ratio: {dim}')
    lines.append('')
    lines.append(f'  total pixels:     {result.total_pixels:,}')
    lines.append(f'  excluded pixels:  {result.excluded_pixels:,}')
    lines.append(f'  map area pixels:  {result.processed_pixels:,}  ({result.coverage_pct:.2f}% of image)')
    lines.append('')

    width = max((len(s.name) for s in result.categories), default=0)
    for stat in result.categories:
        lines.append(f'  {stat.name:<{width}}  {stat.count:>12,}  {stat.percentage:6.2f}%')

    lines.append('')
    top = result.dominant()
    if top is None:
        lines.append('dominant: (none, every pixel excluded)')
    else:
        lines.append(f'dominant: {top.name} {top.percentage:.2f}%')
    return '\n'.join(lines)


def format_json(result: AnalysisResult, image_path: str | None = None) -> str:
    """Format a result as JSON."""
    obj: dict[str, Any] = {}
    if image_path:
        obj['image'] = image_path
    obj.update(result.as_dict())
    obj['coverage_pct'] = result.coverage_pct
    top = result.dominant()
    obj['dominant'] = top.id if top is not None else None
    return json.dumps(obj, indent=2)
