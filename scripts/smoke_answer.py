from __future__ import annotations

import sys

from dotenv import load_dotenv

from scholar.core.config import AssistantConfig
from scholar.core.factory import build_answer_agent
from scholar.core.log import configure_logging
from scholar.core.models import Role
from scholar.storage.database import DocumentDatabase
from scholar.storage.seed import seed_documents


def main() -> None:
    load_dotenv()
    configure_logging()

    query = " ".join(sys.argv[1:]) or "Who is the HOD of MCA?"
    agent = build_answer_agent("gemini", config=AssistantConfig.from_env())

    database = DocumentDatabase()
    for doc in seed_documents():
        database.save(doc)

    result = agent.generate_answer(
        query,
        history=[],
        role=Role.PUBLIC,
        documents=database.get_all(),
        on_progress=lambda s: print(f"... {s}"),
    )

    print("Assistant:", result.text)
    for c in result.citations:
        print(f"  [{c.source_type.value}] {c.title} {c.url or ''}")
    print("Metrics:", result.metrics)


if __name__ == "__main__":
    main()
