"""map-ratio: Pixel colour ratio analysis for rasterised maps.

Usage: map-ratio <command> [options]

Commands:
  analyze   Classify every pixel of an image and print category ratios.
  policy    Print the effective classification policy as JSON.

Environment variables / .env loading:
  OS environment variables are always used first.
  If a variable is not set, map-ratio looks for a .env file starting from
  the current directory and walking up, stopping at the nearest .git boundary.
  Use --env-file to override the .env location explicitly.

  MAP_RATIO_POLICY     default --policy file
  MAP_RATIO_WORKERS    default --workers
  MAP_RATIO_LOG_LEVEL  DEBUG, INFO, WARNING, ...
"""

import argparse
import json
import os
import sys

from PIL import Image

from map_ratio.core.env import Settings, load_settings
from map_ratio.core.errors import MapRatioError
from map_ratio.core.log import get_logger
from map_ratio.core.policy import DEFAULT_POLICY, ClassificationPolicy, load_policy, policy_to_dict
from map_ratio.core.report import format_json, format_text
from map_ratio.core.types import Bitmap
from map_ratio.engine import classify

log = get_logger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    epilog = (
        'Examples:\n'
        '  map-ratio analyze page.png\n'
        '  map-ratio analyze page.png --json\n'
        '  map-ratio analyze page.png --policy palette.json --workers 4\n'
        '  map-ratio analyze page.png --fail-below-coverage 50\n'
        '  map-ratio policy > palette.json\n'
    )
    parser = argparse.ArgumentParser(
        prog='map-ratio',
        description='Classify map pixels into colour categories and report their ratios.',
        epilog=epilog,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument(
        '--env-file',
        metavar='PATH',
        default=None,
        help='Path to .env file (default: walk up from cwd to .git boundary)',
    )
    sub = parser.add_subparsers(dest='command', help='Command to run')

    p = sub.add_parser('analyze', help='Classify every pixel and print category ratios')
    p.add_argument('image', help='Path to a PNG/JPG/... image')
    p.add_argument('-p', '--policy', help='JSON policy file (default: $MAP_RATIO_POLICY or built-in)')
    p.add_argument('-j', '--json', action='store_true', help='Output JSON instead of text')
    p.add_argument('-w', '--workers', type=int, default=None, help='Threads to classify with (default: 1)')
    p.add_argument(
        '-c',
        '--fail-below-coverage',
        type=float,
        default=None,
        metavar='PCT',
        help='Exit 1 if the map area covers less than PCT%% of the image (CI gating)',
    )

    pp = sub.add_parser('policy', help='Print the effective policy as JSON')
    pp.add_argument('-p', '--policy', help='JSON policy file to normalise (default: built-in)')

    return parser


def _resolve_policy(path: str | None, settings: Settings) -> ClassificationPolicy:
    path = path or settings.policy_path
    if not path:
        return DEFAULT_POLICY
    log.info('using policy %s', path)
    return load_policy(path)


def _run_analyze(args: argparse.Namespace, settings: Settings) -> int:
    if not os.path.isfile(args.image):
        print(f'map-ratio: error: image not found: {args.image}', file=sys.stderr)
        return 1

    policy = _resolve_policy(args.policy, settings)
    workers = args.workers if args.workers is not None else settings.workers
    if workers < 1:
        print(f'map-ratio: error: --workers must be >= 1, got {workers}', file=sys.stderr)
        return 1

    with Image.open(args.image) as image:
        bitmap = Bitmap.from_image(image)
    log.info('classifying %s (%dx%d) with %d worker(s)', args.image, bitmap.width, bitmap.height, workers)

    result = classify(bitmap, policy, workers=workers)

    if args.json:
        print(format_json(result, image_path=args.image))
    else:
        print(format_text(result, image_path=args.image))

    # CI gate runs after output so the report is visible even on failure
    threshold = args.fail_below_coverage
    if threshold is not None and result.coverage_pct < threshold:
        print(
            f'\nFAIL: map area covers {result.coverage_pct:.2f}% of the image, below {threshold}%',
            file=sys.stderr,
        )
        return 1
    return 0


def _run_policy(args: argparse.Namespace, settings: Settings) -> int:
    policy = _resolve_policy(args.policy, settings)
    print(json.dumps(policy_to_dict(policy), indent=2))
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        # OS env vars always win over .env entries
        settings = load_settings(env_file=args.env_file)
        if settings.source:
            print(f'map-ratio: loaded {settings.source}', file=sys.stderr)
        if args.command == 'analyze':
            code = _run_analyze(args, settings)
        else:
            code = _run_policy(args, settings)
    except (MapRatioError, OSError, UnicodeDecodeError) as e:
        print(f'map-ratio: error: {e}', file=sys.stderr)
        sys.exit(1)

    if code:
        sys.exit(code)


if __name__ == '__main__':
    main()
