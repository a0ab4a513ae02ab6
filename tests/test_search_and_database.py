from scholar.core.models import Document, Role
from scholar.storage.database import DocumentDatabase
from scholar.storage.search import filter_documents, query_tokens


def _docs():
    return [
        Document(id="fees", title="Fees", content="Hostel fee is 90000"),
        Document(id="hod", title="MCA HOD", content="The HOD is Dr. Premasudha B G"),
        Document(
            id="students",
            title="MCA Student List",
            content="1SI24MC001 Student One",
            category="student_list",
            is_restricted=True,
        ),
    ]


def test_query_tokens_drop_short_words():
    assert query_tokens("Who is the HOD of MCA") == ["who", "the", "hod", "mca"]
    assert query_tokens("a an of") == []


def test_hostel_fee_matches_fees_document():
    found = filter_documents("hostel fee", _docs(), Role.PUBLIC)
    assert [d.id for d in found] == ["fees"]


def test_public_role_never_sees_restricted_documents():
    for query in ("MCA student list", "1SI24MC001", "mca"):
        found = filter_documents(query, _docs(), Role.PUBLIC)
        assert all(not d.is_restricted for d in found)


def test_privileged_roles_see_restricted_documents():
    for role in (Role.AUTHORIZED, Role.ADMIN):
        found = filter_documents("student list", _docs(), role)
        assert "students" in [d.id for d in found]


def test_query_without_usable_tokens_matches_nothing():
    assert filter_documents("is a", _docs(), Role.ADMIN) == []


def test_database_document_crud():
    db = DocumentDatabase()
    for d in _docs():
        db.save(d)

    assert db.get("fees").content == "Hostel fee is 90000"
    assert [d.id for d in db.get_all(category="student_list")] == ["students"]
    assert db.get("students").is_restricted is True

    db.save(Document(id="fees", title="Fees", content="Hostel fee is 95000"))
    assert db.get("fees").content == "Hostel fee is 95000"
    assert len(db.get_all()) == 3

    db.delete("hod")
    assert db.get("hod") is None
    assert db.size() == {"documents": 2, "files": 0}


def test_database_search_uses_keyword_filter():
    db = DocumentDatabase()
    for d in _docs():
        db.save(d)

    assert [d.id for d in db.search("premasudha")] == ["hod"]


def test_upload_text_indexes_a_document(tmp_path):
    db = DocumentDatabase(tmp_path / "data" / "docs.db")
    stored = db.upload_text("timetable.txt", "Monday: Data Structures lab", is_restricted=True)

    assert db.get_file(stored.id).size == len("Monday: Data Structures lab")
    doc = db.get(f"doc-{stored.id}")
    assert doc.title == "timetable.txt"
    assert doc.is_restricted is True
    assert filter_documents("timetable", db.get_all(), Role.PUBLIC) == []

    db.delete_file(stored.id)
    assert db.get_all_files() == []
    db.close()


def test_upload_file_reads_disk_and_indexes_with_restricted_flag(tmp_path):
    path = tmp_path / "marks.csv"
    path.write_bytes(b"USN,Marks\n1SI24MC001,91\xff\n")
    db = DocumentDatabase(tmp_path / "docs.db")

    stored = db.upload_file(path, is_restricted=True)

    saved = db.get_file(stored.id)
    assert saved.name == "marks.csv"
    assert saved.type == "text/csv"
    assert saved.content.startswith("USN,Marks\n1SI24MC001,91")
    assert "�" in saved.content

    doc = db.get(f"doc-{stored.id}")
    assert doc.title == "marks.csv"
    assert doc.is_restricted is True
    assert filter_documents("marks", db.get_all(), Role.PUBLIC) == []
    assert [d.id for d in filter_documents("marks", db.get_all(), Role.ADMIN)] == [doc.id]
    db.close()


def test_clear_all_empties_both_tables():
    db = DocumentDatabase()
    db.save(_docs()[0])
    db.upload_text("a.txt", "alpha")

    db.clear_all()

    assert db.size() == {"documents": 0, "files": 0}
