import argparse
import logging
import sys

import bench
from errors import HashGenError
from hashgen import Algorithm, generate_hash
from tokens import TOKEN_TYPES, generate_token


def build_parser():
    parser = argparse.ArgumentParser(prog='hashgen', description='MD5/SHA-256 hashes and random tokens')
    parser.add_argument('-v', '--verbose', action='store_true', help='enable debug logging')
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('hash', help='hash a string')
    p.add_argument('text')
    p.add_argument('-a', '--algorithm', default=Algorithm.SHA256.value,
                   help="'md5' or 'sha-256' (default: %(default)s)")

    p = sub.add_parser('token', help='generate a token')
    p.add_argument('--kind', default='uuid', choices=TOKEN_TYPES)
    p.add_argument('--length', type=int, default=32)
    p.add_argument('--seed', help='deterministic seed')

    p = sub.add_parser('bench', help='write speed badges')
    p.add_argument('--out', default='bench', help='output directory (default: %(default)s)')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')
    try:
        if args.command == 'hash':
            print(generate_hash(args.text, args.algorithm))
        elif args.command == 'token':
            print(generate_token(args.kind, args.length, args.seed))
        elif args.command == 'bench':
            if not bench.write_badges(args.out):
                return 1
    except HashGenError as e:
        print(f'error: {e}', file=sys.stderr)
        return 2
    return 0


if __name__ == '__main__':
    sys.exit(main())
