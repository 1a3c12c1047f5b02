#!/usr/bin/env python3
"""
OSD Sign-Off Configuration Script

Quick setup for mail credentials.
Usage:
    python configure.py                                      # Interactive mode
    python configure.py --smtp-host HOST --smtp-user USER \\
        --smtp-pass PASS --from-email ADDR                   # Direct mode
    python configure.py --transport gmail                    # Change mail transport
    python configure.py --gmail-auth                         # Create the Gmail API token
"""

import argparse
import re
import sys
from pathlib import Path


VALID_TRANSPORTS = {"smtp", "gmail", "dry_run"}

# .env variable -> command-line option
ENV_OPTIONS = {
    "SMTP_HOST": "smtp_host",
    "SMTP_PORT": "smtp_port",
    "SMTP_USER": "smtp_user",
    "SMTP_PASS": "smtp_pass",
    "FROM_EMAIL": "from_email",
    "TO_EMAIL": "to_email",
    "FRONTEND_ORIGIN": "frontend_origin",
}


def render_env(template: str, values: dict) -> str:
    """
    Fill .env.example template lines with the given values.

    Args:
        template: Contents of .env.example
        values: Mapping of variable name -> value (missing keys keep the template value)

    Returns:
        New .env contents
    """
    for name, value in values.items():
        if value is None:
            continue
        pattern = rf"^{re.escape(name)}=.*$"
        line = f"{name}={value}"
        template, count = re.subn(pattern, lambda m: line, template, count=1, flags=re.MULTILINE)
        if count == 0:
            template = template.rstrip("\n") + f"\n{line}\n"
    return template


def setup_env_file(values: dict, force: bool = False) -> bool:
    """
    Create or update .env file with mail settings.

    Args:
        values: Mapping of variable name -> value
        force: Overwrite existing .env file

    Returns:
        True if successful
    """
    root_dir = Path(__file__).parent
    env_file = root_dir / ".env"
    env_example = root_dir / ".env.example"

    if env_file.exists() and not force:
        print(f"⚠️  .env file already exists at {env_file}")
        response = input("Overwrite? [y/N]: ").strip().lower()
        if response != 'y':
            print("❌ Setup cancelled.")
            return False

    if not env_example.exists():
        print(f"❌ Error: .env.example template not found at {env_example}")
        return False

    env_file.write_text(render_env(env_example.read_text(), values))
    print(f"✅ Created {env_file}")
    print("✅ Mail settings configured successfully!")

    return True


def update_transport_config(transport: str) -> bool:
    """
    Update the mail transport in config/settings.yaml.

    Args:
        transport: One of smtp, gmail, dry_run

    Returns:
        True if successful
    """
    if transport not in VALID_TRANSPORTS:
        print(f"❌ Error: '{transport}' is not a supported mail transport.")
        print(f"Valid transports: {', '.join(sorted(VALID_TRANSPORTS))}")
        return False

    config_file = Path(__file__).parent / "config" / "settings.yaml"

    if not config_file.exists():
        print(f"❌ Error: Configuration file not found at {config_file}")
        return False

    content = config_file.read_text()

    # Match the line: transport: "smtp" with potential comment
    pattern = r'(  transport: )"[^"]*"(.*?)$'
    replacement = rf'\1"{transport}"\2'

    new_content, count = re.subn(pattern, replacement, content, count=1, flags=re.MULTILINE)

    if count == 0:
        print(f"❌ Error: Could not find mail transport in {config_file}")
        return False

    config_file.write_text(new_content)
    print(f"✅ Mail transport set to: {transport}")

    return True


def authorize_gmail() -> bool:
    """
    Create the Gmail API token (opens a browser).

    Returns:
        True if a usable token exists afterwards
    """
    sys.path.insert(0, str(Path(__file__).parent / "src"))
    from osd_signoff.services.gmail import GmailMailer

    mailer = GmailMailer()
    try:
        mailer.authorize()
    except FileNotFoundError as e:
        print(f"❌ Error: {e}")
        return False

    print(f"✅ Gmail token saved to {mailer.token_file}")
    return True


def interactive_setup() -> bool:
    """Interactive setup mode."""
    print("=" * 60)
    print("OSD Sign-Off Setup - Mail Configuration")
    print("=" * 60)
    print()

    values = {
        "SMTP_HOST": input("SMTP host: ").strip(),
        "SMTP_PORT": input("SMTP port [587]: ").strip() or "587",
        "SMTP_USER": input("SMTP user: ").strip(),
        "SMTP_PASS": input("SMTP password: ").strip(),
        "FROM_EMAIL": input("From address: ").strip(),
        "TO_EMAIL": input("Default recipient (optional): ").strip(),
    }

    if not values["SMTP_HOST"]:
        print("❌ Error: SMTP host cannot be empty")
        return False

    print()
    return setup_env_file(values)


def main():
    parser = argparse.ArgumentParser(
        description="OSD Sign-Off Setup - Configure mail credentials",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python configure.py                                         # Interactive mode
  python configure.py --smtp-host smtp.office365.com \\
      --smtp-user me@co.com --smtp-pass SECRET --force        # Direct mode
  python configure.py --transport dry_run                     # Save e-mails locally
  python configure.py --gmail-auth                            # One-time Gmail login
        """
    )

    parser.add_argument("--smtp-host", type=str, help="SMTP server host")
    parser.add_argument("--smtp-port", type=str, help="SMTP server port")
    parser.add_argument("--smtp-user", type=str, help="SMTP login user")
    parser.add_argument("--smtp-pass", type=str, help="SMTP login password")
    parser.add_argument("--from-email", type=str, help="Sender address")
    parser.add_argument("--to-email", type=str, help="Default recipient(s)")
    parser.add_argument("--frontend-origin", type=str, help="Allowed CORS origin")

    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite existing .env file without asking"
    )

    parser.add_argument(
        "--transport",
        type=str,
        help="Mail transport to use (smtp, gmail, dry_run)"
    )

    parser.add_argument(
        "--gmail-auth",
        action="store_true",
        help="Authorize the Gmail API transport and save its token"
    )

    args = parser.parse_args()

    if args.gmail_auth:
        success = authorize_gmail()
        sys.exit(0 if success else 1)

    if args.transport:
        success = update_transport_config(args.transport)
        sys.exit(0 if success else 1)

    values = {name: getattr(args, option) for name, option in ENV_OPTIONS.items()}

    # Direct mode with any option given
    if any(value is not None for value in values.values()):
        success = setup_env_file(values, force=args.force)
        sys.exit(0 if success else 1)

    success = interactive_setup()
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
