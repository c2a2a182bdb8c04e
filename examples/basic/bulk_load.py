"""
Load newline-delimited JSON documents into the configured index.

    ES_HOST=http://localhost:9200 python bulk_load.py events.jsonl
"""

import asyncio
import json
import sys
from pathlib import Path

from esresilience import DocStore, DocStoreSettings, create_client, load_config, setup_logging_from_config

BATCH_SIZE = 500


async def load(path: Path) -> None:
    project_dir = Path(__file__).parent
    config = load_config(project_dir)
    setup_logging_from_config(config.data, project_dir=project_dir)

    settings = DocStoreSettings.from_config(config)
    async with DocStore(create_client(settings), settings) as store:
        body = []
        with open(path) as f:
            for line in f:
                body.append({"index": {"_index": settings.index}})
                body.append(json.loads(line))
                if len(body) == 2 * BATCH_SIZE:
                    await store.bulk_send(body)
                    body = []
        if body:
            await store.bulk_send(body)

        print(await store.count({"index": settings.index}))


if __name__ == "__main__":
    asyncio.run(load(Path(sys.argv[1])))
