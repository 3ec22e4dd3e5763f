"""Search index reset script.

Run this script to drop and recreate the security policy index, or to
delete its documents while keeping the index. The proxy must be running.

Usage:
    python -m scripts.reset_index           # recreate the index
    python -m scripts.reset_index --clear   # delete documents only
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from app.core.factory import ComponentFactory
from app.core.config import get_settings


async def main(clear_only: bool = False) -> None:
    """Recreate the index, or clear its documents."""
    settings = get_settings()
    search_index = ComponentFactory(settings).get_search_index()

    if clear_only:
        print(f"Clearing documents from '{settings.search_index_name}'...")
        deleted = await search_index.clear_index()
        print(f"Deleted {deleted} document(s).")
    else:
        print(f"Recreating index '{settings.search_index_name}'...")
        await search_index.recreate_index()
        print("Index recreated successfully!")

    stats = await search_index.get_index_stats()
    print(f"Documents: {stats.document_count}, storage: {stats.storage_size} bytes")


if __name__ == "__main__":
    asyncio.run(main(clear_only="--clear" in sys.argv[1:]))
