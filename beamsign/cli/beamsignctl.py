#!/usr/bin/env python3
"""
beamsign - sign and verify BEAM modules from the command line.

Commands:
    keygen          Generate an Ed25519 signing keypair
    sign            Sign a module into a new file
    verify          Verify a module's embedded signature
    chunks          List a module's chunks
    strip           Remove debug and metadata chunks

Usage:
    # Generate a new signing keypair
    beamsign keygen --output keys/

    # Sign a module (the source file is never modified)
    beamsign sign ebin/my_module.beam --key keys/signing.key --output signed/my_module.beam

    # Verify a signed module
    beamsign verify signed/my_module.beam --public-key keys/signing.pub

Environment:
    BEAMSIGN_VERBOSE    Enable debug logging
    BEAMSIGN_LOG_FILE   Also write logs to this file
    BEAMSIGN_LOG_JSON   Emit JSON log lines

Security Notes:
    - Keep the private signing key OFFLINE and secure
    - Distribute only signing.pub (or signing.pub.hex) to runtimes
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from ..constants import ChunkTags, Ed25519Sizes
from ..container import decode_attributes, read_chunks, read_signature, strip_module
from ..crypto import ed25519
from ..integrity import ModuleSigner, SignatureVerifier
from ..logging_config import (
    configure_from_environment,
    get_logger,
    get_logging_state,
    set_verbose,
    setup_logging,
)
from ..utils.error_handling import ErrorCategory, safe_execute

logger = get_logger('cli')


def cmd_keygen(args) -> int:
    """Generate a new signing keypair."""
    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)

    private_key, public_key = ed25519.generate_key_pair()

    private_path = output_dir / "signing.key"
    ed25519.write_key_file(private_path, private_key, secret=True)
    print(f"Private key saved to: {private_path}")

    public_path = output_dir / "signing.pub"
    ed25519.write_key_file(public_path, public_key)
    print(f"Public key saved to: {public_path}")

    hex_path = output_dir / "signing.pub.hex"
    with open(hex_path, 'w') as f:
        f.write(public_key.hex())
    print(f"Public key (hex) saved to: {hex_path}")

    print()
    print(f"Keep {private_path} OFFLINE and never commit it to version control.")
    return 0


def cmd_sign(args) -> int:
    """Sign a module into a new file."""
    with safe_execute("sign", additional_context={'module': args.module}) as result:
        signer = ModuleSigner(signing_key_path=args.key)
        result.value = signer.sign_file(args.module, args.output)

    if not result.success:
        print(f"Error signing module: {result.error.error}", file=sys.stderr)
        return 1

    print(f"Signed module: {result.value}")
    print(f"Public key for verification: {signer.public_key.hex()}")

    if args.verify:
        if not SignatureVerifier(signer.public_key).is_valid(result.value):
            print("Verification FAILED", file=sys.stderr)
            return 1
        print("Verification PASSED")

    return 0


def cmd_verify(args) -> int:
    """Verify a module's signature."""
    with safe_execute("verify", additional_context={'module': args.module}) as result:
        verifier = SignatureVerifier.from_key_file(args.public_key)
        result.value = verifier.verify(args.module)

    if not result.success:
        print(f"Error verifying module: {result.error.error}", file=sys.stderr)
        return 1

    verification = result.value
    if args.json:
        print(json.dumps(verification.to_dict(), indent=2))
    else:
        print(f"Status: {verification.status.value}")
        print(f"Code size: {verification.code_size} bytes")
        print(f"Duration: {verification.duration_ms:.1f}ms")
        print()
        print("VERIFICATION PASSED" if verification.is_valid else "VERIFICATION FAILED")

    return 0 if verification.is_valid else 1


def cmd_chunks(args) -> int:
    """List the chunks of a module."""
    with safe_execute("chunks", ErrorCategory.CONTAINER) as result:
        chunks = read_chunks(args.module)
        attributes = decode_attributes(chunks)
        result.value = (chunks, attributes, read_signature(chunks))

    if not result.success:
        print(f"Error reading module: {result.error.error}", file=sys.stderr)
        return 1

    chunks, attributes, signature = result.value
    for chunk in chunks:
        print(f"  {chunk.tag}  {chunk.size:>10} bytes")

    if attributes is None:
        print(f"No {ChunkTags.ATTR} chunk")
    else:
        print(f"Attributes: {', '.join(attributes.keys()) or '(none)'}")
    print(f"Signature: {'present' if signature is not None else 'absent'}")
    return 0


def cmd_strip(args) -> int:
    """Strip a module into a new file."""
    if Path(args.output).exists() and Path(args.output).resolve() == Path(args.module).resolve():
        print("Error: output must differ from the input module", file=sys.stderr)
        return 1

    with safe_execute("strip", additional_context={'module': args.module}) as result:
        result.value = strip_module(args.module)

    if not result.success:
        print(f"Error stripping module: {result.error.error}", file=sys.stderr)
        return 1

    with open(args.output, 'wb') as f:
        f.write(result.value)
    print(f"Stripped module saved to: {args.output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='beamsign',
        description='Sign and verify BEAM modules with Ed25519',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('-V', '--verbose', action='store_true', help='Enable debug logging')
    parser.add_argument('--json-logs', action='store_true', help='Emit JSON log lines')
    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # keygen
    keygen_parser = subparsers.add_parser('keygen', help='Generate signing keypair')
    keygen_parser.add_argument(
        '-o', '--output',
        default='.',
        help='Output directory for keys',
    )
    keygen_parser.set_defaults(func=cmd_keygen)

    # sign
    sign_parser = subparsers.add_parser('sign', help='Sign a module')
    sign_parser.add_argument('module', help='Path to the .beam file')
    sign_parser.add_argument(
        '-k', '--key',
        required=True,
        help='Path to signing private key',
    )
    sign_parser.add_argument(
        '-o', '--output',
        required=True,
        help='Path for the signed module',
    )
    sign_parser.add_argument(
        '--no-verify',
        dest='verify',
        action='store_false',
        default=True,
        help='Skip immediate verification',
    )
    sign_parser.set_defaults(func=cmd_sign)

    # verify
    verify_parser = subparsers.add_parser('verify', help='Verify a signed module')
    verify_parser.add_argument('module', help='Path to the .beam file')
    verify_parser.add_argument(
        '-p', '--public-key',
        required=True,
        help=f'Path to public key file (raw {Ed25519Sizes.PUBLIC_KEY} bytes or hex)',
    )
    verify_parser.add_argument('--json', action='store_true', help='Print the result as JSON')
    verify_parser.set_defaults(func=cmd_verify)

    # chunks
    chunks_parser = subparsers.add_parser('chunks', help='List module chunks')
    chunks_parser.add_argument('module', help='Path to the .beam file')
    chunks_parser.set_defaults(func=cmd_chunks)

    # strip
    strip_parser = subparsers.add_parser('strip', help='Strip debug and metadata chunks')
    strip_parser.add_argument('module', help='Path to the .beam file')
    strip_parser.add_argument('-o', '--output', required=True, help='Path for the stripped module')
    strip_parser.set_defaults(func=cmd_strip)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_from_environment()
    if args.json_logs:
        # Keep the environment's log file and verbosity
        state = get_logging_state()
        setup_logging(
            verbose=args.verbose or state['verbose'],
            log_file=state['log_file'],
            json_format=True,
        )
    elif args.verbose:
        set_verbose(True)

    if not args.command:
        parser.print_help()
        return 0

    logger.debug(f"Running command {args.command}")
    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
