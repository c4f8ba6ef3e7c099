"""
Command line interface for the Marketo SOAP client.

    marketo-api get email jane@example.org
    marketo-api import leads.csv --batch-size 100
    marketo-api smoke-test
"""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from .client import MarketoClient, MarketoConfig
from .exceptions import MarketoAPIError
from .importer import DEFAULT_BATCH_SIZE, LeadImporter, ValidationError, sync_leads
from .lead import leads_to_dataframe


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="marketo-api", description="Marketo SOAP API client")
    parser.add_argument("--user-id", help="SOAP user id (or set MARKETO_USER_ID)")
    parser.add_argument("--encryption-key", help="SOAP encryption key (or set MARKETO_ENCRYPTION_KEY)")
    parser.add_argument("--subdomain", help="Munchkin subdomain (or set MARKETO_SUBDOMAIN)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    commands = parser.add_subparsers(dest="command", required=True)

    get = commands.add_parser("get", help="Look up leads by key")
    get.add_argument("key_type", help="Key type (EMAIL, IDNUM, ...) or name (email, id, salesforce_lead_id, ...)")
    get.add_argument("value", help="Key value")

    import_ = commands.add_parser("import", help="Import a CSV of leads and sync them")
    import_.add_argument("filepath", help="Path to CSV file")
    import_.add_argument("--validate-only", action="store_true", help="Only validate, don't import")
    import_.add_argument("--batch-size", type=int, default=DEFAULT_BATCH_SIZE)
    import_.add_argument("--no-dedup", action="store_true", help="Disable de-duplication on sync")
    import_.add_argument("--skip-generic", action="store_true", help="Skip role addresses such as info@ and sales@")

    commands.add_parser("smoke-test", help="Check configuration and request signing")
    return parser


def _make_client(args: argparse.Namespace) -> MarketoClient:
    if args.user_id and args.encryption_key:
        options = {"user_id": args.user_id, "encryption_key": args.encryption_key}
        if args.subdomain:
            options["subdomain"] = args.subdomain
        return MarketoClient(**options)

    config = MarketoConfig.from_env()
    if args.subdomain:
        config.subdomain = args.subdomain
    return MarketoClient(config=config)


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=log_level, format="%(levelname)s: %(message)s")

    if args.command == "import" and args.validate_only:
        is_valid, issues = LeadImporter().validate_file(args.filepath)
        if is_valid:
            print("File is valid")
            return 0
        print("Validation issues:")
        for issue in issues:
            print(f"  - {issue}")
        return 1

    try:
        client = _make_client(args)
    except ValueError as e:
        print(f"Error: {e}")
        print("Set MARKETO_USER_ID and MARKETO_ENCRYPTION_KEY or use --user-id/--encryption-key")
        return 1

    with client:
        try:
            if args.command == "get":
                found = client.leads.get(args.key_type, args.value)
                if found is None:
                    print("No leads found")
                else:
                    leads = found if isinstance(found, list) else [found]
                    print(leads_to_dataframe(leads).to_string(index=False))

            elif args.command == "import":
                result = LeadImporter(skip_generic_emails=args.skip_generic).import_csv(args.filepath)
                print(result.summary())
                for error in result.errors[:5]:
                    print(f"  Row {error['row']}: {error['error']}")

                synced = sync_leads(
                    client.leads,
                    result.leads,
                    batch_size=args.batch_size,
                    dedup_enabled=not args.no_dedup,
                )
                print(f"Synced {len(synced)} leads")

            elif args.command == "smoke-test":
                print("Running smoke test...")
                print(f"  Endpoint: {client.config.endpoint_url}")
                print(f"  Timeout: {client.config.timeout}")
                print(f"  Max retries: {client.config.max_retries}")
                header = client.signature()
                print(f"  Signed request at {header['requestTimestamp']} as {header['mktowsUserId']}")
                print("Smoke test passed!")

        except ValueError as e:
            print(f"Error: {e}")
            return 1

        except (FileNotFoundError, ValidationError) as e:
            print(f"Error: {e}")
            return 1

        except MarketoAPIError as e:
            print(f"API Error: {e}")
            return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
