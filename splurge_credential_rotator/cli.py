#!/usr/bin/env python3
"""Command-line interface for the Splurge Credential Rotator."""

import argparse
import json
import logging
import os
import sys
from typing import Any, Optional

from splurge_credential_rotator.credential_rotator import CredentialRotator
from splurge_credential_rotator.exceptions import CredentialRotatorError, ValidationError
from splurge_credential_rotator.models import RotationOutcome
from splurge_credential_rotator.services.rotation.handler import RotationHandler


class CredentialRotatorCLI:
    """Command-line interface for the Credential Rotator."""

    def __init__(self) -> None:
        """Initialize the CLI."""
        self._parser = self._create_parser()
        self._pretty = False

    def _default_data_dir(self) -> str:
        """Compute a platform-appropriate default data directory."""
        env_dir = os.getenv("SCR_DATA_DIR")
        if env_dir:
            return env_dir

        # Windows: use %APPDATA%\splurge-credential-rotator
        appdata = os.getenv("APPDATA")
        if appdata:
            return os.path.join(appdata, "splurge-credential-rotator")

        # POSIX: ~/.config/splurge-credential-rotator
        home = os.path.expanduser("~")
        if home:
            return os.path.join(home, ".config", "splurge-credential-rotator")

        return os.path.join(os.getcwd(), ".scr")

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create the argument parser.

        Returns:
            Configured argument parser
        """
        parser = argparse.ArgumentParser(
            prog="splurge-credential-rotator",
            description="Splurge Credential Rotator - mint, publish and retire credentials safely",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # Rotate one principal (first run bootstraps its credential)
  splurge-credential-rotator -ep SCR_STORE_PASSWORD -d /path/to/data rotate -n svc1

  # Rotate several principals concurrently, even if rotated recently
  splurge-credential-rotator -ep SCR_STORE_PASSWORD -d /path/to/data rotate \\
    -n svc1 -n svc2 --force

  # Revoke stale credentials left by failed retirements
  splurge-credential-rotator -ep SCR_STORE_PASSWORD -d /path/to/data reconcile -n svc1

  # Show published version and ACTIVE credentials (no secret material)
  splurge-credential-rotator -ep SCR_STORE_PASSWORD -d /path/to/data status -n svc1

  # Read the published secret
  splurge-credential-rotator -ep SCR_STORE_PASSWORD -d /path/to/data read -n svc1 --reveal

  # View the last 5 rotations of a principal
  splurge-credential-rotator -ep SCR_STORE_PASSWORD -d /path/to/data history -n svc1 -l 5

Exit status: 0 success, 2 partial success (retirement pending), 1 failure.
            """,
        )

        # Global arguments
        parser.add_argument(
            "-d",
            "--data-dir",
            default=self._default_data_dir(),
            help="Data directory for rotator state (default: platform config dir)",
        )
        parser.add_argument(
            "-p",
            "--password",
            help="Store password protecting secret material at rest",
        )
        parser.add_argument(
            "-ep",
            "--env-password",
            help="Environment variable containing the store password",
        )
        parser.add_argument(
            "--pretty",
            action="store_true",
            help="Pretty-print JSON outputs",
        )
        parser.add_argument(
            "-v",
            "--verbose",
            action="store_true",
            help="Log rotation progress to stderr",
        )

        subparsers = parser.add_subparsers(
            dest="command",
            help="Available commands",
        )

        # Rotate command
        rotate_parser = subparsers.add_parser(
            "rotate",
            help="Rotate the credential of one or more principals",
        )
        rotate_parser.add_argument(
            "-n",
            "--name",
            action="append",
            required=True,
            help="Principal to rotate (repeatable)",
        )
        rotate_parser.add_argument(
            "-f",
            "--force",
            action="store_true",
            help="Rotate even if the last rotation is recent",
        )

        # Reconcile command
        reconcile_parser = subparsers.add_parser(
            "reconcile",
            help="Revoke ACTIVE credentials the secret store does not serve",
        )
        reconcile_parser.add_argument(
            "-n",
            "--name",
            action="append",
            help="Principal to reconcile (repeatable; default: all published principals)",
        )

        # Status command
        status_parser = subparsers.add_parser(
            "status",
            help="Show published version and ACTIVE credentials of a principal",
        )
        status_parser.add_argument(
            "-n",
            "--name",
            required=True,
            help="Principal to inspect",
        )

        # Read command
        read_parser = subparsers.add_parser(
            "read",
            help="Read the currently published secret of a principal",
        )
        read_parser.add_argument(
            "-n",
            "--name",
            required=True,
            help="Principal to read",
        )
        read_parser.add_argument(
            "--reveal",
            action="store_true",
            help="Include the secret material in the output",
        )

        # History command
        history_parser = subparsers.add_parser(
            "history",
            help="View rotation history",
        )
        history_parser.add_argument(
            "-n",
            "--name",
            help="Only show rotations of this principal",
        )
        history_parser.add_argument(
            "-l",
            "--limit",
            type=int,
            help="Maximum number of history entries to show (optional)",
        )

        # Data-dir command
        subparsers.add_parser(
            "data-dir",
            help="Print the data directory path that will be used",
        )

        return parser

    def _validate_required_args(self, args: argparse.Namespace) -> None:
        """Validate that required arguments are provided."""
        self._validate_required_args_with_dependencies(
            command=args.command,
            password=args.password,
            env_password=args.env_password,
            data_dir=args.data_dir
        )

    def _validate_required_args_with_dependencies(
        self,
        *,
        command: str,
        password: str | None,
        env_password: str | None,
        data_dir: str | None
    ) -> None:
        """Validate that required arguments are provided with explicit dependencies.

        Raises:
            ValidationError: If required arguments are missing or invalid
        """
        if command == "data-dir":
            return

        if not data_dir:
            raise ValidationError("Data directory (-d/--data-dir) is required")

        if not password and not env_password:
            raise ValidationError(
                "Either password (-p/--password) or environment password "
                "(-ep/--env-password) is required"
            )

        if password and env_password:
            raise ValidationError(
                "Cannot specify both password and environment password"
            )

    def _get_rotator(self, args: argparse.Namespace) -> CredentialRotator:
        """Get CredentialRotator instance based on arguments."""
        return self._get_rotator_with_dependencies(
            env_password=args.env_password,
            password=args.password,
            data_dir=args.data_dir
        )

    def _get_rotator_with_dependencies(
        self,
        *,
        env_password: str | None,
        password: str | None,
        data_dir: str
    ) -> CredentialRotator:
        """Get CredentialRotator instance with explicit dependencies.

        Raises:
            ValidationError: If arguments are invalid
        """
        if env_password:
            return CredentialRotator.init_from_environment(env_password, data_dir)

        return CredentialRotator(password, data_dir)

    def _print_json(self, payload: dict[str, Any]) -> None:
        """Print a JSON payload to stdout."""
        print(json.dumps(payload, indent=2 if self._pretty else None))

    def _print_error(self, *, message: str, code: str = "error", extra: dict[str, Any] | None = None) -> None:
        """Print a JSON error to stderr and exit non-zero."""
        error_obj = {
            "success": False,
            "error_code": code,
            "message": message,
        }
        if extra:
            error_obj["data"] = extra
        print(json.dumps(error_obj, indent=2), file=sys.stderr)
        sys.exit(1)

    def _print_outcomes(self, *, command: str, outcomes: list[RotationOutcome]) -> None:
        """Print rotation outcomes and exit with the batch status."""
        summary = RotationHandler.summarize(outcomes)
        self._print_json({
            "success": summary != "failed",
            "command": command,
            "summary": summary,
            "outcomes": [outcome.to_dict() for outcome in outcomes],
        })
        exit_code = RotationHandler.exit_code(outcomes)
        if exit_code:
            sys.exit(exit_code)

    def _handle_rotate(self, args: argparse.Namespace) -> None:
        """Handle rotate command."""
        self._handle_rotate_with_dependencies(
            names=args.name,
            force=args.force,
            env_password=args.env_password,
            password=args.password,
            data_dir=args.data_dir
        )

    def _handle_rotate_with_dependencies(
        self,
        *,
        names: list[str],
        force: bool,
        env_password: str | None,
        password: str | None,
        data_dir: str
    ) -> None:
        """Handle rotate command with explicit dependencies.

        Args:
            names: Principals to rotate
            force: Rotate even if rotated recently
            env_password: Environment variable name containing the store password
            password: Store password
            data_dir: Directory for rotator state
        """
        try:
            rotator = self._get_rotator_with_dependencies(
                env_password=env_password,
                password=password,
                data_dir=data_dir
            )
            outcomes = rotator.handle(names, force=force)
        except ValidationError as e:
            self._print_error(message=str(e), code="validation_error")
        except CredentialRotatorError as e:
            self._print_error(message=str(e), code=e.error_code)

        self._print_outcomes(command="rotate", outcomes=outcomes)

    def _handle_reconcile(self, args: argparse.Namespace) -> None:
        """Handle reconcile command."""
        self._handle_reconcile_with_dependencies(
            names=args.name,
            env_password=args.env_password,
            password=args.password,
            data_dir=args.data_dir
        )

    def _handle_reconcile_with_dependencies(
        self,
        *,
        names: list[str] | None,
        env_password: str | None,
        password: str | None,
        data_dir: str
    ) -> None:
        """Handle reconcile command with explicit dependencies.

        Args:
            names: Principals to reconcile (all published principals when None)
            env_password: Environment variable name containing the store password
            password: Store password
            data_dir: Directory for rotator state
        """
        try:
            rotator = self._get_rotator_with_dependencies(
                env_password=env_password,
                password=password,
                data_dir=data_dir
            )
            outcomes = rotator.reconcile(names or rotator.list_principals())
        except ValidationError as e:
            self._print_error(message=str(e), code="validation_error")
        except CredentialRotatorError as e:
            self._print_error(message=str(e), code=e.error_code)

        self._print_outcomes(command="reconcile", outcomes=outcomes)

    def _handle_status(self, args: argparse.Namespace) -> None:
        """Handle status command."""
        try:
            rotator = self._get_rotator(args)
            status = rotator.status(args.name)
        except ValidationError as e:
            self._print_error(message=str(e), code="validation_error")
        except CredentialRotatorError as e:
            self._print_error(message=str(e), code=e.error_code)

        self._print_json({
            "success": True,
            "command": "status",
            **status,
        })

    def _handle_read(self, args: argparse.Namespace) -> None:
        """Handle read command."""
        try:
            rotator = self._get_rotator(args)
            current = rotator.read_current(args.name)
        except ValidationError as e:
            self._print_error(message=str(e), code="validation_error")
        except CredentialRotatorError as e:
            self._print_error(message=str(e), code=e.error_code)

        if current is None:
            self._print_error(message=f"No secret published for {args.name}", code="not_found")

        self._print_json({
            "success": True,
            "command": "read",
            **current.to_dict(include_secret=args.reveal),
        })

    def _handle_history(self, args: argparse.Namespace) -> None:
        """Handle history command."""
        try:
            rotator = self._get_rotator(args)
            history = rotator.get_rotation_history(principal=args.name, limit=args.limit)
        except ValidationError as e:
            self._print_error(message=str(e), code="validation_error")
        except CredentialRotatorError as e:
            self._print_error(message=str(e), code=e.error_code)

        history_data = []
        for entry in history:
            history_data.append({
                "rotation_id": entry.rotation_id,
                "principal": entry.principal,
                "state": entry.state.value,
                "outcome": entry.outcome,
                "old_credential_ids": entry.old_credential_ids,
                "new_credential_id": entry.new_credential_id,
                "published_version": entry.published_version,
                "pending_retirement": entry.pending_retirement,
                "error": entry.error,
                "phase_timestamps": entry.phase_timestamps,
            })

        self._print_json({
            "success": True,
            "command": "history",
            "count": len(history_data),
            "history": history_data,
        })

    def run(self, args: Optional[list[str]] = None) -> None:
        """Run the CLI with given arguments."""
        try:
            parsed_args = self._parser.parse_args(args)
            self._pretty = bool(getattr(parsed_args, "pretty", False))

            if not parsed_args.command:
                self._print_error(message="No command specified", code="missing_command")

            if parsed_args.verbose:
                logging.basicConfig(
                    level=logging.INFO,
                    stream=sys.stderr,
                    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
                )

            self._validate_required_args(parsed_args)

            if parsed_args.command == "rotate":
                self._handle_rotate(parsed_args)
            elif parsed_args.command == "reconcile":
                self._handle_reconcile(parsed_args)
            elif parsed_args.command == "status":
                self._handle_status(parsed_args)
            elif parsed_args.command == "read":
                self._handle_read(parsed_args)
            elif parsed_args.command == "history":
                self._handle_history(parsed_args)
            elif parsed_args.command == "data-dir":
                self._print_json({
                    "success": True,
                    "command": "data-dir",
                    "data_dir": parsed_args.data_dir,
                })
            else:
                self._print_error(message=f"Unknown command: {parsed_args.command}", code="unknown_command")

        except ValidationError as e:
            self._print_error(message=str(e), code="validation_error")
        except KeyboardInterrupt:
            self._print_error(message="Operation cancelled by user", code="cancelled")
        except Exception as e:
            self._print_error(message=str(e), code="unexpected_error")


def main() -> None:
    """Main entry point for the CLI."""
    cli = CredentialRotatorCLI()
    cli.run()


if __name__ == "__main__":
    main()
