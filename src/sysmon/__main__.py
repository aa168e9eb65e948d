"""Run sysmon with ``python -m sysmon``."""

from sysmon.app import main

raise SystemExit(main())
