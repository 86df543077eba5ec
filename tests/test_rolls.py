import pytest

from academy.services.rolls import course_code, format_roll_number, next_roll_number


class TestCourseCode:
    @pytest.mark.parametrize(
        "name, code",
        [
            ("Criminal Law Advanced", "CLA"),
            ("Constitutional Law", "CL"),
            ("CLAT Preparation", "CP"),
            ("Judiciary Foundation Course for Beginners", "JFCF"),
            ("  (Evening) batch  ", "EB"),
            ("", "GEN"),
        ],
    )
    def test_first_letters(self, name, code):
        assert course_code(name) == code


class TestFormat:
    def test_format(self):
        assert format_roll_number("Criminal Law Advanced", 2024, 4) == "LLACLA240004"

    def test_custom_prefix_and_year_wrap(self):
        assert format_roll_number("Constitutional Law", 2100, 12, prefix="ACD") == "ACDCL000012"

    def test_sequence_past_four_digits_is_not_truncated(self):
        assert format_roll_number("Constitutional Law", 2024, 12345) == "LLACL2412345"

    def test_sequence_must_be_positive(self):
        with pytest.raises(ValueError):
            format_roll_number("Constitutional Law", 2024, 0)


class TestAllocation:
    def test_continues_after_existing_enrollments(self, store, course_id):
        for name in ("A", "B", "C"):
            store.add(
                "students",
                {"fullName": name, "courseId": course_id, "course": "Criminal Law Advanced", "enrollmentYear": 2024},
            )

        roll = next_roll_number(store, course_id=course_id, course_name="Criminal Law Advanced", year=2024)

        assert roll == "LLACLA240004"

    def test_sequences_are_per_course_and_year(self, store, course_id):
        other = store.add("courses", {"name": "Constitutional Law", "fee": 35000})

        a = next_roll_number(store, course_id=course_id, course_name="Criminal Law Advanced", year=2024)
        b = next_roll_number(store, course_id=course_id, course_name="Criminal Law Advanced", year=2024)
        c = next_roll_number(store, course_id=other, course_name="Constitutional Law", year=2024)
        d = next_roll_number(store, course_id=course_id, course_name="Criminal Law Advanced", year=2025)

        assert (a, b, c, d) == ("LLACLA240001", "LLACLA240002", "LLACL240001", "LLACLA250001")

    def test_legacy_students_matched_by_name(self, store, course_id):
        store.add("students", {"fullName": "Old", "course": "Criminal Law Advanced", "enrollmentYear": 2024})

        roll = next_roll_number(store, course_id=course_id, course_name="Criminal Law Advanced", year=2024)

        assert roll.endswith("0002")

    def test_no_duplicates_after_deletion(self, store, course_id):
        first = next_roll_number(store, course_id=course_id, course_name="Criminal Law Advanced", year=2024)
        store.add("students", {"fullName": "X", "courseId": course_id, "enrollmentYear": 2024})
        store.clear("students")

        second = next_roll_number(store, course_id=course_id, course_name="Criminal Law Advanced", year=2024)

        assert first != second
