#!/usr/bin/env python3
"""
VIN Inventory CLI - Command Line Interface
==========================================

Main CLI entry point for VIN inventory operations.

Usage:
    vin-inventory normalize <text>                   Normalize OCR text
    vin-inventory submit <vin> --lat .. --lon ..     Report one VIN
    vin-inventory scan <image>... --lat .. --lon ..  OCR images and report VINs
"""

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from pathlib import Path

from . import __version__
from .config import get_config
from .exceptions import ConfigurationError
from .core.vin_utils import extract_vin_candidate, normalize_ocr_text, validate_vin
from .submission.client import InventoryClient
from .submission.models import Coordinate
from .submission.results import SubmissionResult, SubmissionStatus


def _print_result(result: SubmissionResult, as_json: bool = False):
    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
        return
    line = f"{result.vin or '-'}: {result.status.value}"
    if result.http_code is not None:
        line += f" (HTTP {result.http_code})"
    if result.message:
        line += f" - {result.message}"
    print(line)


def _coordinate_from_args(args):
    if args.lat is None or args.lon is None:
        return None
    return Coordinate(args.lat, args.lon)


def _submission_config(args):
    config = get_config().submission
    overrides = {}
    if args.base_url:
        overrides['base_url'] = args.base_url
    if args.retries is not None:
        overrides['max_retries'] = args.retries
    return dataclasses.replace(config, **overrides)


def _scan_exit_code(results):
    """0 when something was reported and nothing failed; repeat reads are not failures."""
    failures = [
        r for r in results
        if not r.is_success and r.status is not SubmissionStatus.DUPLICATE_SUPPRESSED
    ]
    reported = any(r.is_success for r in results)
    return 0 if reported and not failures else 1


def cmd_normalize(args):
    """Normalize OCR text and show the VIN candidate."""
    normalized = normalize_ocr_text(args.text)
    candidate = extract_vin_candidate(normalized)
    validation = validate_vin(candidate if candidate else normalized)

    if args.json:
        print(json.dumps({
            'raw_text': args.text,
            'normalized': normalized,
            'vin': candidate,
            'validation': validation.to_dict(),
        }, indent=2))
    else:
        print(f"Normalized: {normalized}")
        print(f"VIN: {candidate or 'not a VIN'}")
        if candidate:
            print(f"Checksum valid: {validation.checksum_valid}")

    return 0 if candidate else 1


def cmd_submit(args):
    """Submit a single VIN with a coordinate."""
    try:
        coordinate = _coordinate_from_args(args)
    except ValueError as e:
        print(f"Error: {e}")
        return 2

    vin = normalize_ocr_text(args.vin)
    if not args.no_validate:
        candidate = extract_vin_candidate(vin)
        if candidate is None:
            _print_result(SubmissionResult.invalid_vin_format(vin), args.json)
            return 1
        vin = candidate

    async def _submit():
        async with InventoryClient(_submission_config(args)) as client:
            return await client.submit(vin, coordinate)

    try:
        result = asyncio.run(_submit())
    except ConfigurationError as e:
        print(f"Error: {e}")
        return 2
    _print_result(result, args.json)
    return 0 if result.is_success else 1


def cmd_scan(args):
    """OCR images as frames and submit every VIN found."""
    from .pipeline.scan_session import ScanSession
    from .providers.location import LastKnownLocationProvider
    from .providers.ocr_providers import OCRProviderFactory

    images = [Path(p) for p in args.images]
    missing = [p for p in images if not p.exists()]
    if missing:
        print(f"Error: Image not found: {missing[0]}")
        return 1

    try:
        coordinate = _coordinate_from_args(args)
    except ValueError as e:
        print(f"Error: {e}")
        return 2

    config = dataclasses.replace(get_config(), submission=_submission_config(args))
    location = LastKnownLocationProvider(initial=coordinate)
    recognizer = OCRProviderFactory.create(args.provider)

    def _on_alert(alert):
        print(f"ALERT: {alert.message}", file=sys.stderr)

    async def _scan():
        async with ScanSession.create(
            config=config,
            recognizer=recognizer,
            location_provider=location,
            on_alert=_on_alert,
        ) as session:
            return await session.run(str(p) for p in images)

    print(f"Processing {len(images)} images...")
    try:
        results = asyncio.run(_scan())
    except ConfigurationError as e:
        print(f"Error: {e}")
        return 2
    for result in results:
        _print_result(result)

    if args.output:
        with open(args.output, 'w') as f:
            json.dump([r.to_dict() for r in results], f, indent=2)
        print(f"Results saved to: {args.output}")

    return _scan_exit_code(results)


def build_parser():
    parser = argparse.ArgumentParser(
        prog='vin-inventory',
        description='VIN Inventory Scanner - Report Vehicle Identification Numbers with GPS coordinates',
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--log-level', help='Override VIN_LOG_LEVEL (DEBUG, INFO, ...)')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Normalize command
    normalize_parser = subparsers.add_parser('normalize', help='Normalize OCR text')
    normalize_parser.add_argument('text', help='Raw recognized text')
    normalize_parser.add_argument('--json', '-j', action='store_true', help='Output as JSON')

    def add_submission_args(sub):
        sub.add_argument('--lat', type=float, help='Latitude in decimal degrees')
        sub.add_argument('--lon', type=float, help='Longitude in decimal degrees')
        sub.add_argument('--base-url', help='Override VIN_INVENTORY_BASE_URL')
        sub.add_argument('--retries', type=int, help='Override VIN_HTTP_MAX_RETRIES')

    # Submit command
    submit_parser = subparsers.add_parser('submit', help='Report one VIN')
    submit_parser.add_argument('vin', help='VIN (OCR normalization is applied)')
    add_submission_args(submit_parser)
    submit_parser.add_argument('--no-validate', action='store_true',
                               help='Send the normalized text even if it is not a valid VIN')
    submit_parser.add_argument('--json', '-j', action='store_true', help='Output as JSON')

    # Scan command
    scan_parser = subparsers.add_parser('scan', help='OCR images and report VINs')
    scan_parser.add_argument('images', nargs='+', help='Image files, processed as consecutive frames')
    add_submission_args(scan_parser)
    scan_parser.add_argument('--provider', default='paddleocr', help='OCR provider')
    scan_parser.add_argument('--output', '-o', help='Output JSON file')

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    get_config()
    if args.log_level:
        logging.getLogger().setLevel(args.log_level.upper())

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        'normalize': cmd_normalize,
        'submit': cmd_submit,
        'scan': cmd_scan,
    }

    return commands[args.command](args)


if __name__ == '__main__':
    sys.exit(main())
