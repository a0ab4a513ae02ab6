from __future__ import annotations

import logging
from datetime import datetime, timezone

from scholar.core.models import Document
from scholar.storage.database import DocumentDatabase
from scholar.storage.local_store import DATA_INITIALIZED_KEY, LocalStore

logger = logging.getLogger(__name__)

_SEED = (
    {
        "id": "sit-general",
        "title": "Siddaganga Institute of Technology (SIT) Overview",
        "category": "other",
        "content": (
            "Siddaganga Institute of Technology (SIT)\n"
            "Location: Tumkur, Karnataka, India\n"
            "Type: Autonomous Engineering College\n"
            "Established: 1963\n"
            "Affiliation: Visvesvaraya Technological University (VTU), Belagavi\n"
            "Approval: AICTE\n"
            "The institute offers undergraduate, postgraduate and doctoral programs."
        ),
    },
    {
        "id": "mca-department-info",
        "title": "MCA Department Overview",
        "category": "curriculum",
        "content": (
            "Department: Master of Computer Applications (MCA)\n"
            "Established: 1994\n"
            "Autonomous Since: 2008\n"
            "Duration: 2 years (4 semesters)\n"
            "Affiliation: VTU, Belagavi\n"
            "Research Center: Yes"
        ),
    },
    {
        "id": "mca-hod",
        "title": "MCA HOD - Head of Department",
        "category": "faculty_file",
        "content": (
            "The Head of Department (HOD) of MCA at SIT is Dr. Premasudha B G.\n"
            "Designation: Professor & Head of Department\n"
            "Qualification: Ph.D, MCA\n"
            "Profile: https://sit.ac.in/html/department.php?deptid=15"
        ),
    },
    {
        "id": "mca-curriculum",
        "title": "MCA Curriculum Outline",
        "category": "curriculum",
        "content": (
            "Semester 1: Data Structures, Database Management Systems, Operating Systems, "
            "Discrete Mathematics.\n"
            "Semester 2: Object Oriented Programming with Java, Computer Networks, "
            "Software Engineering, Web Technologies.\n"
            "Semester 3: Machine Learning, Cloud Computing, electives.\n"
            "Semester 4: Internship and major project."
        ),
    },
    {
        "id": "fees",
        "title": "Fees",
        "category": "other",
        "content": (
            "Hostel fee is 90000 per year including mess charges.\n"
            "Tuition fees follow the government and management quota notifications "
            "published by the admissions office each year."
        ),
    },
    {
        "id": "mca-student-list",
        "title": "MCA Student List (USN)",
        "category": "student_list",
        "is_restricted": True,
        "content": (
            "| USN | Name |\n"
            "|-----|------|\n"
            "| 1SI24MC001 | Student One |\n"
            "| 1SI24MC002 | Student Two |\n"
            "| 1SI24MC003 | Student Three |"
        ),
    },
)


def seed_documents() -> list[Document]:
    now = datetime.now(timezone.utc).isoformat()
    return [Document.from_dict({**item, "uploaded_at": now}) for item in _SEED]


def initialize_data(database: DocumentDatabase, local_store: LocalStore) -> bool:
    """Seed the built-in documents on first run. Returns True when seeding happened."""
    if local_store.get(DATA_INITIALIZED_KEY, False):
        return False
    docs = seed_documents()
    for doc in docs:
        database.save(doc)
    local_store.set(DATA_INITIALIZED_KEY, True)
    logger.info("Initialized with %d documents", len(docs))
    return True


def reset_data(database: DocumentDatabase, local_store: LocalStore) -> None:
    database.clear_all()
    local_store.remove(DATA_INITIALIZED_KEY)
    initialize_data(database, local_store)
