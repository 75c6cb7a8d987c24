#!/usr/bin/env python3
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

print(
    f"[mcp] threshold_ms={os.environ.get('MCP_CHAINS_THRESHOLD_MS', '1000')} | "
    f"pass={os.environ.get('MCP_CHAINS_PASS', 'defaultPass')} | "
    f"skip_verification={os.environ.get('MCP_CHAINS_SKIP_VERIFICATION', '0')}",
    file=sys.stderr,
)

from mcp_servers.critical_chains.main import main  # noqa: E402

if __name__ == "__main__":
    main()
