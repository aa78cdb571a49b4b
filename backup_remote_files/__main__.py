from __future__ import annotations

from backup_remote_files.cli.exporter import run

if __name__ == "__main__":
    run()
