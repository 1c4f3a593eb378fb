# Secure Vault - Command Line Entry Point
#
#   secure-vault serve            run the local API (prints the session token)
#   secure-vault status           show lock state and vault directory
#   secure-vault export FILE      write the catalog export document
#   secure-vault import FILE      replace the catalog from an export document
#   secure-vault check-password   check a password against the policy
#
# Export and import never need the password: items stay encrypted.

import argparse
import getpass
import json
import sys
from pathlib import Path

from . import __version__
from .vault import VaultError, VaultManager, password_policy_errors


def _manager(args) -> VaultManager:
    return VaultManager(data_dir=Path(args.data_dir) if args.data_dir else None)


def cmd_serve(args) -> int:
    from .api.main import start_api_server

    print(f"  Starting Secure Vault API on {args.host or 'default host'}:{args.port or 'default port'}...")
    print("  Press Ctrl+C to stop")
    try:
        start_api_server(host=args.host, port=args.port)
    except KeyboardInterrupt:
        print("\nShutting down...")
    return 0


def cmd_status(args) -> int:
    state = _manager(args).get_lock_state()
    print(json.dumps(state, indent=2))
    return 0


def cmd_export(args) -> int:
    document = _manager(args).export_catalog()
    Path(args.output).write_text(document, encoding="utf-8")
    print(f"Exported catalog to {args.output}")
    return 0


def cmd_import(args) -> int:
    try:
        document = Path(args.input).read_text(encoding="utf-8")
    except OSError as e:
        print(f"Error: cannot read {args.input}: {e}", file=sys.stderr)
        return 1
    items = _manager(args).import_catalog(document)
    print(f"Imported {len(items)} item(s)")
    return 0


def cmd_check_password(args) -> int:
    errors = password_policy_errors(getpass.getpass("Password: "))
    if errors:
        for error in errors:
            print(f"  - {error}")
        return 1
    print("Password meets the policy")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="secure-vault",
        description="Secure Vault - password-encrypted storage for text secrets and files",
    )
    parser.add_argument(
        "--data-dir",
        default=None,
        help="Directory holding the catalog database (default: SECURE_VAULT_HOME or ~/.secure-vault)"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Secure Vault v{__version__}"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the local API server")
    serve.add_argument("--host", default=None, help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=None, help="Port (default: 8000)")
    serve.set_defaults(func=cmd_serve)

    status = sub.add_parser("status", help="Show lock state")
    status.set_defaults(func=cmd_status)

    export = sub.add_parser("export", help="Export the catalog to a JSON file")
    export.add_argument("output", help="Destination file")
    export.set_defaults(func=cmd_export)

    import_ = sub.add_parser("import", help="Replace the catalog from an export file")
    import_.add_argument("input", help="Export document to read")
    import_.set_defaults(func=cmd_import)

    check = sub.add_parser("check-password", help="Check a password against the policy")
    check.set_defaults(func=cmd_check_password)

    return parser


def main(argv=None) -> int:
    """Main entry point for Secure Vault."""
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except VaultError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
