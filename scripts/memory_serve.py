"""
Launch the persona memory API server.

Usage:
    python scripts/memory_serve.py
    python scripts/memory_serve.py --port 8080 --host 127.0.0.1 --db data/memory/dev.db
    PERSONA_MEMORY_PORT=9000 python scripts/memory_serve.py --log-level debug
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from persona_memory.api.serve import main

if __name__ == "__main__":
    sys.exit(main())
