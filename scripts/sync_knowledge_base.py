#!/usr/bin/env python3
"""
Sync Knowledge Base
===================

Re-embeds every knowledge article from the database into the vector index.

Usage:
    python scripts/sync_knowledge_base.py            # diff: upsert + drop stale vectors
    python scripts/sync_knowledge_base.py --rebuild  # clear the index first
"""

import argparse
import asyncio
import sys

from autocrm.config import settings
from autocrm.container import ServiceContainer
from autocrm.infrastructure.database import close_database, get_session_context, init_database
from autocrm.knowledge.application import KnowledgeArticleService
from autocrm.knowledge.infrastructure import SQLAlchemyKnowledgeArticleRepository
from autocrm.shared.infrastructure.logging import setup_logging


async def main(strategy: str) -> int:
    setup_logging(level=settings.log_level, environment=settings.environment)
    init_database()

    container = ServiceContainer.build(settings)
    await container.vector_index.initialize()

    try:
        async with get_session_context() as session:
            service = KnowledgeArticleService(
                SQLAlchemyKnowledgeArticleRepository(session),
                container.sync
            )
            report = await service.resync(strategy)
    finally:
        await container.shutdown()
        await close_database()

    print(report.message)
    for error in report.errors:
        print(f"  {error}")
    return 0 if report.success and not report.errors else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Sync knowledge articles into the vector index")
    parser.add_argument(
        "--rebuild",
        action="store_true",
        help="Clear the index before inserting (default: diff)"
    )
    args = parser.parse_args()
    sys.exit(asyncio.run(main("rebuild" if args.rebuild else "diff")))
