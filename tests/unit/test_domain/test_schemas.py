"""
test_schemas.py - course record helpers

Checks:
- benefits flag as typed in the source sheet
- session location and the remote/in-person decision
"""

import pytest

from coursedocs.domain.schemas import CourseData, Participant, Session


class TestHasBenefits:
    @pytest.mark.parametrize("value", ["Sì", "SI", "si - NASpI", "Yes", "true", "1", "Benefit DOL"])
    def test_flagged(self, value: str):
        assert Participant(benefits=value).has_benefits

    @pytest.mark.parametrize("value", ["", "No", "NO.", "0", "false", "  ", "forse"])
    def test_not_flagged(self, value: str):
        assert not Participant(benefits=value).has_benefits

    def test_beneficiaries_sorted_by_numero(self, course_dict: dict):
        course_dict["partecipanti"][0]["benefits"] = "Sì"
        course_dict["partecipanti"][2]["benefits"] = "Si"
        course_dict["partecipanti"].reverse()
        course = CourseData.from_dict(course_dict)

        assert [p.cognome for p in course.beneficiaries] == ["Rossi", "Verdi"]

    def test_no_beneficiaries(self, course: CourseData):
        assert course.beneficiaries == []


class TestSessionLocation:
    def test_session_venue_wins(self, course: CourseData):
        assert course.session_location(Session(sede="Aula 1", tipo_sede="Aula")) == "Aula 1"

    def test_coded_venues(self, course: CourseData):
        assert course.session_location(Session(sede="1")) == "presenza"
        assert course.session_location(Session(sede="4")) == "online"

    def test_course_venue_fallback(self, course: CourseData):
        assert course.session_location(Session()) == "Sede Centrale"

    def test_is_fad_fallback(self, empty_course: CourseData):
        assert empty_course.session_location(Session(is_fad=True)) == "online"
        assert empty_course.session_location(Session()) == "presenza"


class TestIsRemoteSession:
    @pytest.mark.parametrize(
        "sede, is_fad, expected",
        [
            ("Online", False, True),
            ("FAD sincrona", False, True),
            ("4", False, True),
            ("Ufficio Milano", True, False),
            ("1", True, False),
            ("Aula 1", False, False),
            ("Aula 1", True, True),
        ],
    )
    def test_keywords_then_flag(self, empty_course: CourseData, sede: str, is_fad: bool, expected: bool):
        assert empty_course.is_remote_session(Session(sede=sede, is_fad=is_fad)) is expected

    def test_remote_fixture_session(self, fad_course: CourseData):
        remote = [s for s in fad_course.sessioni if fad_course.is_remote_session(s)]
        assert [s.numero for s in remote] == [3]
