import pytest

from academy.errors import ResolutionError, ValidationError
from academy.services.courses import (
    add_course,
    delete_course,
    find_course_by_name,
    get_course,
    list_courses,
    rename_course,
    update_course_fee,
)
from academy.services.enquiries import add_enquiry
from academy.services.fees import register_student
from academy.store import MAX_BATCH_WRITES


class TestCourseCatalog:
    def test_list_is_ordered_by_name(self, store):
        add_course(store, name="Judiciary Foundation Course", fee=60000)
        add_course(store, name="CLAT Preparation", fee=25000)

        assert [c["name"] for c in list_courses(store)] == ["CLAT Preparation", "Judiciary Foundation Course"]

    def test_duplicate_name_rejected_case_insensitively(self, store, course_id):
        with pytest.raises(ValidationError) as exc:
            add_course(store, name="criminal law advanced", fee=1)
        assert "name" in exc.value.errors

    def test_find_by_name(self, store, course_id):
        assert find_course_by_name(store, " CRIMINAL LAW ADVANCED ")["id"] == course_id
        assert find_course_by_name(store, "Nope") is None

    def test_negative_fee_rejected(self, store, course_id):
        with pytest.raises(ValidationError):
            update_course_fee(store, course_id, -1)

    def test_get_missing(self, store):
        with pytest.raises(ResolutionError):
            get_course(store, "gone")

    def test_delete_leaves_students(self, store, course_id, student_form):
        sid = register_student(store, **student_form).record_id

        delete_course(store, course_id)

        assert store.get("courses", course_id) is None
        assert store.get("students", sid)["course"] == "Criminal Law Advanced"


class TestRename:
    def test_migrates_students_and_enquiries(self, store, course_id, student_form):
        sid = register_student(store, **student_form).record_id
        eid = add_enquiry(store, name="Sneha Iyer", mobile="9000000001", course_id=course_id)
        legacy = store.add("students", {"fullName": "Old Timer", "course": "Criminal Law Advanced"})
        other = store.add("students", {"fullName": "Other", "course": "Constitutional Law"})

        migrated = rename_course(store, course_id, "Criminal Law (Advanced)")

        assert migrated == 3
        assert get_course(store, course_id)["name"] == "Criminal Law (Advanced)"
        assert store.get("students", sid)["course"] == "Criminal Law (Advanced)"
        assert store.get("enquiries", eid)["course"] == "Criminal Law (Advanced)"
        assert store.get("students", legacy)["courseId"] == course_id
        assert store.get("students", other)["course"] == "Constitutional Law"

    def test_same_name_is_a_no_op(self, store, course_id):
        assert rename_course(store, course_id, "Criminal Law Advanced") == 0

    def test_name_clash_rejected(self, store, course_id):
        add_course(store, name="Constitutional Law", fee=35000)
        with pytest.raises(ValidationError):
            rename_course(store, course_id, "constitutional law")

    def test_large_migration_is_chunked(self, store, course_id):
        n = MAX_BATCH_WRITES + 20
        with store.batch() as batch:
            for i in range(MAX_BATCH_WRITES):
                batch.set("students", f"s{i}", {"fullName": f"S{i}", "courseId": course_id})
        for i in range(MAX_BATCH_WRITES, n):
            store.set("students", f"s{i}", {"fullName": f"S{i}", "courseId": course_id})

        assert rename_course(store, course_id, "CLA") == n
        assert {s["course"] for s in store.query("students")} == {"CLA"}
