#!/usr/bin/env python3
"""
Generate an MSK IAM auth token from the command line.

Useful for checking that the credentials on a host can produce a token for
a cluster's region, and for inspecting the signed URL behind a token.

Usage:
    python generate_token.py --region us-west-2
    python generate_token.py --region us-west-2 --profile analytics
    python generate_token.py --region us-west-2 --role-arn arn:aws:iam::123456789012:role/msk
    python generate_token.py --region us-west-2 --decode --debug-creds

Without --region, AWS_REGION / AWS_DEFAULT_REGION and the MSK_SIGNER_*
variables (or a .env file) are used.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from aws_msk_iam_sasl_signer import (
    SignerContext,
    SignerError,
    SignerOptions,
    decode_auth_token,
    generate_auth_token_from_options,
)
from aws_msk_iam_sasl_signer.signing import parse_query


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate an MSK IAM auth token")
    parser.add_argument("--region", help="AWS region of the MSK cluster")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--profile", help="Named AWS profile")
    source.add_argument("--role-arn", help="Role to assume for the token")
    parser.add_argument("--sts-session-name", help="AssumeRole session name")
    parser.add_argument("--sts-region", help="Region of the STS endpoint")
    parser.add_argument("--timeout", type=float, help="Give up after this many seconds")
    parser.add_argument("--debug-creds", action="store_true",
                        help="Log the caller identity (extra STS call)")
    parser.add_argument("--decode", action="store_true",
                        help="Print the decoded signed URL and its parameters")
    return parser.parse_args(argv)


def build_options(args: argparse.Namespace) -> SignerOptions:
    options = SignerOptions.from_env()
    if args.region:
        options.region = args.region
    if args.profile:
        options.aws_profile = args.profile
        options.role_arn = None
    if args.role_arn:
        options.role_arn = args.role_arn
        options.aws_profile = None
    if args.sts_session_name:
        options.sts_session_name = args.sts_session_name
    if args.sts_region:
        options.sts_region = args.sts_region
    if args.debug_creds:
        options.aws_debug_creds = True
    return options


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug_creds else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    context = SignerContext.with_timeout(args.timeout) if args.timeout else None
    try:
        token, expiry_ms = generate_auth_token_from_options(build_options(args), context)
    except SignerError as e:
        print(f"Error: {e}", file=sys.stderr)
        if e.__cause__ is not None:
            print(f"Caused by: {e.__cause__!r}", file=sys.stderr)
        return 1

    if args.decode:
        url = decode_auth_token(token)
        print(json.dumps({
            "token": token,
            "expiry_ms": expiry_ms,
            "url": url,
            "params": parse_query(url),
        }, indent=2))
    else:
        print(token)
    return 0


if __name__ == "__main__":
    sys.exit(main())
