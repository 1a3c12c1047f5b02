"""
OSD Sign-Off

Turns driver sign-off submissions into paginated PDF records and e-mails them:
- docuflow: payload normalization, image decoding, layout and composition
- services: mail transports, disk copies and the submission audit log
- server: Flask HTTP boundary
"""

__version__ = "1.0.0"
