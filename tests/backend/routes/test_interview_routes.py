from datetime import datetime

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from backend.routes.interview_routes import (
    ConfirmInterviewRequest,
    FeedbackRequest,
    SelectSlotRequest,
    cancel_interview,
    confirm_interview,
    get_interview,
    interview_stats,
    list_interviews,
    select_slot,
    submit_feedback,
)

NINE = datetime(2026, 1, 6, 9, 0)
TEN = datetime(2026, 1, 6, 10, 0)
ELEVEN = datetime(2026, 1, 6, 11, 0)
NOON = datetime(2026, 1, 6, 12, 0)


@pytest.fixture
def people(make_user):
    return {
        'candidate': make_user('candidate@example.com', 'candidate'),
        'interviewer': make_user('interviewer@example.com', 'interviewer'),
        'admin': make_user('admin@example.com', 'admin'),
        'outsider': make_user('outsider@example.com', 'candidate'),
    }


@pytest.fixture
def proposed_interview(people, add_interview):
    return add_interview(
        people['candidate'],
        people['interviewer'],
        NINE,
        TEN,
        proposed=[(NINE, TEN), (TEN, ELEVEN), (ELEVEN, NOON)],
    )


def test_select_slot_request_rejects_out_of_range_index() -> None:
    with pytest.raises(ValidationError):
        SelectSlotRequest(slot_index=3)


def test_feedback_request_bounds_rating() -> None:
    with pytest.raises(ValidationError):
        FeedbackRequest(rating=6)

    assert FeedbackRequest(rating=4, comments='   ').comments is None


def test_list_interviews_scopes_by_role(people, add_interview, db_session) -> None:
    mine = add_interview(people['candidate'], people['interviewer'], NINE, TEN)
    add_interview(people['outsider'], people['interviewer'], ELEVEN, NOON)

    as_candidate = list_interviews(
        status_filter=None, start_date=None, end_date=None, current_user=people['candidate'], db=db_session
    )
    as_interviewer = list_interviews(
        status_filter=None, start_date=None, end_date=None, current_user=people['interviewer'], db=db_session
    )
    as_admin = list_interviews(
        status_filter='proposed', start_date=None, end_date=None, current_user=people['admin'], db=db_session
    )

    assert [interview.id for interview in as_candidate] == [mine.id]
    assert len(as_interviewer) == 2
    assert len(as_admin) == 2


def test_list_interviews_rejects_unknown_status(people, db_session) -> None:
    with pytest.raises(HTTPException) as exception_info:
        list_interviews(
            status_filter='archived', start_date=None, end_date=None, current_user=people['admin'], db=db_session
        )

    assert exception_info.value.status_code == 400


def test_get_interview_denies_non_participants(people, proposed_interview, db_session) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_interview(proposed_interview.id, current_user=people['outsider'], db=db_session)

    assert exception_info.value.status_code == 403
    assert get_interview(proposed_interview.id, current_user=people['admin'], db=db_session).id == proposed_interview.id


def test_get_interview_returns_not_found_when_missing(people, db_session) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_interview(999, current_user=people['admin'], db=db_session)

    assert exception_info.value.status_code == 404


def test_select_slot_confirms_chosen_time(people, proposed_interview, db_session) -> None:
    interview = select_slot(
        proposed_interview.id,
        SelectSlotRequest(slot_index=1),
        current_user=people['candidate'],
        db=db_session,
    )

    assert interview.status == 'confirmed'
    assert interview.selected_slot_index == 1
    assert interview.start_time.replace(tzinfo=None) == TEN
    assert interview.end_time.replace(tzinfo=None) == ELEVEN


def test_select_slot_only_allows_the_candidate(people, proposed_interview, db_session) -> None:
    with pytest.raises(HTTPException) as exception_info:
        select_slot(
            proposed_interview.id,
            SelectSlotRequest(slot_index=0),
            current_user=people['interviewer'],
            db=db_session,
        )

    assert exception_info.value.status_code == 403


def test_select_slot_requires_proposed_status(people, add_interview, db_session) -> None:
    confirmed = add_interview(people['candidate'], people['interviewer'], NINE, TEN, status='confirmed')

    with pytest.raises(HTTPException) as exception_info:
        select_slot(confirmed.id, SelectSlotRequest(slot_index=0), current_user=people['candidate'], db=db_session)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Interview is not in proposed status.'


def test_select_slot_rejects_missing_proposed_slot(people, add_interview, db_session) -> None:
    single = add_interview(people['candidate'], people['interviewer'], NINE, TEN)

    with pytest.raises(HTTPException) as exception_info:
        select_slot(single.id, SelectSlotRequest(slot_index=2), current_user=people['candidate'], db=db_session)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Invalid slot index.'


def test_select_slot_rejects_overlap_with_other_active_interview(
    people,
    make_user,
    proposed_interview,
    add_interview,
    db_session,
) -> None:
    other_interviewer = make_user('busy@example.com', 'interviewer')
    add_interview(people['candidate'], other_interviewer, TEN, ELEVEN, status='confirmed')

    with pytest.raises(HTTPException) as exception_info:
        select_slot(
            proposed_interview.id,
            SelectSlotRequest(slot_index=1),
            current_user=people['candidate'],
            db=db_session,
        )

    assert exception_info.value.status_code == 409


def test_select_slot_ignores_cancelled_interviews_when_checking_overlap(
    people,
    proposed_interview,
    add_interview,
    db_session,
) -> None:
    add_interview(people['outsider'], people['interviewer'], TEN, ELEVEN, status='cancelled')

    interview = select_slot(
        proposed_interview.id,
        SelectSlotRequest(slot_index=1),
        current_user=people['candidate'],
        db=db_session,
    )

    assert interview.status == 'confirmed'


def test_confirm_interview_sets_time_and_link(people, proposed_interview, db_session) -> None:
    request = ConfirmInterviewRequest(
        start=ELEVEN,
        end=NOON,
        meeting_link=' https://meet.example.com/abc ',
        notes='Bring laptop',
    )

    interview = confirm_interview(proposed_interview.id, request, current_user=people['interviewer'], db=db_session)

    assert interview.status == 'confirmed'
    assert interview.start_time.replace(tzinfo=None) == ELEVEN
    assert interview.meeting_link == 'https://meet.example.com/abc'
    assert interview.notes == 'Bring laptop'


def test_confirm_interview_allows_adjacent_interviews(people, proposed_interview, add_interview, db_session) -> None:
    add_interview(people['outsider'], people['interviewer'], NINE, TEN, status='confirmed')

    interview = confirm_interview(
        proposed_interview.id,
        ConfirmInterviewRequest(start=TEN, end=ELEVEN),
        current_user=people['interviewer'],
        db=db_session,
    )

    assert interview.start_time.replace(tzinfo=None) == TEN


def test_confirm_interview_rejects_overlap_for_interviewer(people, proposed_interview, add_interview, db_session) -> None:
    add_interview(people['outsider'], people['interviewer'], TEN, NOON, status='proposed')

    with pytest.raises(HTTPException) as exception_info:
        confirm_interview(
            proposed_interview.id,
            ConfirmInterviewRequest(start=ELEVEN, end=NOON),
            current_user=people['interviewer'],
            db=db_session,
        )

    assert exception_info.value.status_code == 409


def test_confirm_interview_request_rejects_inverted_time() -> None:
    with pytest.raises(ValidationError):
        ConfirmInterviewRequest(start=NOON, end=ELEVEN)


def test_cancel_interview_marks_cancelled(people, proposed_interview, db_session) -> None:
    interview = cancel_interview(proposed_interview.id, current_user=people['candidate'], db=db_session)

    assert interview.status == 'cancelled'


def test_cancel_interview_denies_non_participants(people, proposed_interview, db_session) -> None:
    with pytest.raises(HTTPException) as exception_info:
        cancel_interview(proposed_interview.id, current_user=people['outsider'], db=db_session)

    assert exception_info.value.status_code == 403


def test_submit_feedback_completes_interview(people, proposed_interview, db_session) -> None:
    interview = submit_feedback(
        proposed_interview.id,
        FeedbackRequest(rating=5, comments=' Strong systems design '),
        current_user=people['interviewer'],
        db=db_session,
    )

    assert interview.status == 'completed'
    assert interview.feedback_rating == 5
    assert interview.feedback_comments == 'Strong systems design'
    assert interview.feedback_submitted_at is not None


def test_submit_feedback_rejects_other_interviewers(people, make_user, proposed_interview, db_session) -> None:
    other_interviewer = make_user('other-interviewer@example.com', 'interviewer')

    with pytest.raises(HTTPException) as exception_info:
        submit_feedback(
            proposed_interview.id,
            FeedbackRequest(rating=3),
            current_user=other_interviewer,
            db=db_session,
        )

    assert exception_info.value.status_code == 403


def test_interview_stats_counts_by_status_and_type(people, add_interview, db_session) -> None:
    add_interview(people['candidate'], people['interviewer'], NINE, TEN, status='confirmed')
    add_interview(people['candidate'], people['interviewer'], TEN, ELEVEN, status='cancelled')
    add_interview(people['outsider'], people['interviewer'], ELEVEN, NOON)

    stats = interview_stats(db=db_session)

    assert stats.total == 3
    assert stats.by_status == {'cancelled': 1, 'confirmed': 1, 'proposed': 1}
    assert stats.by_type == {'technical': 3}
