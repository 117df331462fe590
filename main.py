#!/usr/bin/env python3
"""podhost-setup: One-shot provisioning for rootless Podman hosts."""

from podhost.cli import main

if __name__ == "__main__":
    main()
