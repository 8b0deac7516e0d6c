"""Project root entry point for launching the web interface or a cron run."""

from __future__ import annotations

import sys


def main():
    if len(sys.argv) > 1 and sys.argv[1] == "cron":
        from tmgmt_connect.config import initialize_app
        from tmgmt_connect.workers import run_cron

        initialize_app()
        run_cron()
        return

    from tmgmt_connect.web import create_app

    app = create_app()
    app.run(host="0.0.0.0", port=5500, debug=True)


if __name__ == "__main__":
    main()
