#!/usr/bin/env python3
"""
Command line interface for the Kagane page engine.

Usage:
    kagane decrypt PAYLOAD --series ID --chapter ID --index N [-o OUTPUT]
    kagane encode IMAGE --series ID --chapter ID --index N [-o OUTPUT] [--no-scramble]
    kagane mapping --series ID --chapter ID --index N
    kagane fetch SERIES;CHAPTER;COUNT [--token TOKEN] [-o DIR]
    kagane benchmark [--sizes SIZE1,SIZE2] [--iterations N]
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ..config import KaganeConfig
from ..crypto.kdf import derive_page_seed, page_filename
from ..crypto.scramble import Scrambler
from ..errors import KaganeError
from ..image import detect_image_format
from ..protocol.decryptor import create_decryption_context
from ..protocol.encryptor import PageEncryptor
from ..transport.http import ChapterRef, PageFetcher, TokenStore, build_page_refs

logger = logging.getLogger(__name__)

EXTENSIONS = {'jpeg': '.jpg', 'png': '.png', 'webp': '.webp'}


def _add_page_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--series', required=True, help='Series identifier')
    parser.add_argument('--chapter', required=True, help='Chapter identifier')
    parser.add_argument('--index', type=int, required=True, help='1-based page index')


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(prog='kagane', description='Kagane page decryption tools')
    parser.add_argument('--config-dir', type=str, default=None,
                        help='Configuration directory (default: ~/.kagane)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    subparsers = parser.add_subparsers(dest='command', help='Sub-commands')

    decrypt_parser = subparsers.add_parser('decrypt', help='Decrypt a downloaded page payload')
    decrypt_parser.add_argument('payload', type=Path, help='Encrypted payload file')
    _add_page_arguments(decrypt_parser)
    decrypt_parser.add_argument('-o', '--output', type=Path, default=None,
                                help='Output image path (default: payload name + detected extension)')

    encode_parser = subparsers.add_parser('encode', help='Build a payload from an image')
    encode_parser.add_argument('image', type=Path, help='Image file')
    _add_page_arguments(encode_parser)
    encode_parser.add_argument('-o', '--output', type=Path, default=None,
                               help='Output payload path (default: image name + .bin)')
    encode_parser.add_argument('--no-scramble', action='store_true',
                               help='Encrypt without scrambling')

    mapping_parser = subparsers.add_parser('mapping', help='Print the scramble mapping of a page')
    _add_page_arguments(mapping_parser)

    fetch_parser = subparsers.add_parser('fetch', help='Download and decrypt a whole chapter')
    fetch_parser.add_argument('chapter', type=str, help='Chapter reference "series;chapter;count"')
    fetch_parser.add_argument('--token', type=str, default='', help='Access token')
    fetch_parser.add_argument('-o', '--output-dir', type=Path, default=Path('.'),
                              help='Directory for page images (default: current directory)')

    benchmark_parser = subparsers.add_parser('benchmark', help='Run pipeline benchmarks')
    benchmark_parser.add_argument('--sizes', type=str, default='65536,262144',
                                  help='Comma-separated synthetic image sizes')
    benchmark_parser.add_argument('--iterations', type=int, default=10,
                                  help='Pages per size (default: 10)')

    return parser


def cmd_decrypt(args, config: KaganeConfig) -> int:
    decryptor = create_decryption_context(config)
    payload = args.payload.read_bytes()
    image = decryptor.decrypt_page(payload, args.series, args.chapter, args.index)

    output = args.output
    if output is None:
        output = args.payload.with_suffix(EXTENSIONS.get(detect_image_format(image), '.img'))
    output.write_bytes(image)
    print(f"Wrote {len(image)} bytes to {output}")
    return 0


def cmd_encode(args, config: KaganeConfig) -> int:
    encryptor = PageEncryptor(config.grid_size, config.filename_template)
    image = args.image.read_bytes()
    payload = encryptor.encrypt_page(image, args.series, args.chapter, args.index,
                                     scramble=not args.no_scramble)

    output = args.output or args.image.with_suffix('.bin')
    output.write_bytes(payload)
    print(f"Wrote {len(payload)} bytes to {output}")
    return 0


def cmd_mapping(args, config: KaganeConfig) -> int:
    filename = page_filename(args.index, config.filename_template)
    seed = derive_page_seed(args.series, args.chapter, filename)
    mapping = Scrambler(seed, config.grid_size).get_scramble_mapping()
    print(json.dumps({
        'filename': filename,
        'seed': seed,
        'mapping': [destination for _, destination in mapping],
    }))
    return 0


def cmd_fetch(args, config: KaganeConfig) -> int:
    chapter = ChapterRef.parse(args.chapter)
    tokens = TokenStore(args.token or None)
    fetcher = PageFetcher(token_store=tokens,
                          decryptor=create_decryption_context(config),
                          timeout=config.timeout)

    args.output_dir.mkdir(parents=True, exist_ok=True)
    failures = 0
    for page in build_page_refs(chapter, args.token, config.base_url):
        try:
            image = fetcher.fetch_page(page)
        except KaganeError as e:
            failures += 1
            print(f"Page {page.index}: {type(e).__name__}: {e}", file=sys.stderr)
            continue

        extension = EXTENSIONS.get(detect_image_format(image), '.img')
        output = args.output_dir / f"{page.index:04d}{extension}"
        output.write_bytes(image)
        print(f"Wrote {len(image)} bytes to {output}")

    return 2 if failures else 0


def cmd_benchmark(args, config: KaganeConfig) -> int:
    from ..evaluation.benchmark import PageBenchmark

    sizes = [int(size) for size in args.sizes.split(',') if size.strip()]
    benchmark = PageBenchmark(grid_size=config.grid_size,
                              filename_template=config.filename_template)
    results = [benchmark.benchmark_mapping(args.iterations)]
    results.extend(benchmark.benchmark_pipeline(sizes, args.iterations))

    for result in results:
        print(f"{result.name:<9} {result.image_size:>9}B  "
              f"avg {result.avg_time * 1000:8.3f} ms  "
              f"{result.throughput_mbps:8.2f} MB/s")
    return 0


COMMANDS = {
    'decrypt': cmd_decrypt,
    'encode': cmd_encode,
    'mapping': cmd_mapping,
    'fetch': cmd_fetch,
    'benchmark': cmd_benchmark,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    if not args.command:
        parser.print_help()
        return 1

    try:
        config = KaganeConfig(args.config_dir)
        return COMMANDS[args.command](args, config)
    except KaganeError as e:
        logger.error(f"{type(e).__name__}: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == '__main__':
    sys.exit(main())
