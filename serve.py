#!/usr/bin/env python3
"""
OSD Sign-Off Entry Point

Usage:
    python serve.py                 # Production mode (sends e-mail)
    python serve.py --dry-run       # Test mode (saves .eml files to logs/mail_debug)
    python serve.py --help          # Show this help message

First time setup:
    1. Configure mail settings:     python configure.py
    2. Start the service:           python serve.py --dry-run
    3. Submit a form:               POST http://localhost:8080/api/signoff
"""

import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

from osd_signoff.main import main

if __name__ == "__main__":
    # Check for help flag
    if "--help" in sys.argv or "-h" in sys.argv:
        print(__doc__)
        sys.exit(0)
    
    dry_run = "--dry-run" in sys.argv or "-d" in sys.argv
    
    print("\n" + "="*60)
    print("OSD Sign-Off Service")
    print("="*60)
    
    if dry_run:
        print("Mode: DRY-RUN (e-mails saved, not sent)")
    else:
        print("Mode: PRODUCTION (e-mails are sent)")
    
    print("="*60 + "\n")
    
    argv = ["serve"] + (["--dry-run"] if dry_run else [])
    
    try:
        sys.exit(main(argv))
    except KeyboardInterrupt:
        print("\n\nServer stopped by user")
        sys.exit(130)
