from datetime import date, datetime, timedelta, timezone

import pytest

from surveyco.models import QuestionAnswer

def _now():
    return datetime.now(timezone.utc).isoformat()

@pytest.fixture
def survey(builder):
    """Two pages: a required textbox and a choice question, then a checkbox."""
    sid = builder.survey()
    p1 = builder.pages(sid)[0]["id"]
    p2 = builder.page(sid)["id"]
    text = builder.question(sid, p1, builder.textbox("Name", required=True))
    single = builder.question(sid, p1, builder.choice("Happy?"))
    multi = builder.question(sid, p2, builder.choice("Pick any", options=("A", "B", "C"), type="checkbox", required=True))
    return {"id": sid, "pages": (p1, p2), "text": text, "single": single, "multi": multi}

@pytest.fixture
def collector(builder, survey):
    r = builder.client.post("/collectors", json={"type": "web_link", "surveyId": survey["id"]}, headers=builder.headers)
    assert r.status_code == 201, r.text
    return r.json()

def _first_page(survey, name="Ada"):
    return [
        {"questionId": survey["text"]["id"], "answer": name, "questionType": "textbox"},
        {
            "questionId": survey["single"]["id"],
            "answer": str(survey["single"]["options"][0]["id"]),
            "questionType": "multiple_choice",
        },
    ]

def _second_page(survey):
    options = survey["multi"]["options"]
    return [{"questionId": survey["multi"]["id"], "answer": [str(options[0]["id"]), str(options[2]["id"])], "questionType": "checkbox"}]

def _save(client, survey, page, responses, collector=None, **extra):
    body = {"questionResponses": responses, "pageId": page, "startedAt": _now()}
    if collector is not None:
        body["collectorId"] = collector["id"]
    body.update(extra)
    return client.put(f"/survey/{survey['id']}/response", json=body, headers={"User-Agent": "Mozilla/5.0 (X11; Linux x86_64) Firefox/120.0"})

def test_web_link_collectors_are_numbered(builder, survey, collector):
    assert collector["name"] == "Web Link 1"
    assert collector["status"] == "open"
    r = builder.client.post("/collectors", json={"type": "web_link", "surveyId": survey["id"]}, headers=builder.headers)
    assert r.json()["name"] == "Web Link 2"

def test_rename_close_and_delete_collector(builder, survey, collector):
    cid = collector["id"]
    r = builder.client.put(f"/collectors/{cid}", json={"name": "  Newsletter  "}, headers=builder.headers)
    assert r.status_code == 200, r.text
    assert r.json()["name"] == "Newsletter"

    r = builder.client.put(f"/collectors/{cid}/status", json={"status": "closed"}, headers=builder.headers)
    assert r.json()["status"] == "closed"

    r = builder.client.delete(f"/collectors/{cid}", headers=builder.headers)
    assert r.status_code == 200
    assert builder.client.get(f"/collectors/{cid}", headers=builder.headers).status_code == 404
    listed = builder.client.get(f"/survey/{survey['id']}/collectors", headers=builder.headers).json()
    assert cid not in [c["id"] for c in listed]

def test_collector_belongs_to_owner(builder, collector):
    r = builder.client.get(f"/collectors/{collector['id']}", headers={"X-User-Id": "intruder"})
    assert r.status_code == 401

def test_full_response_completes_on_last_page(builder, survey, collector):
    p1, p2 = survey["pages"]

    r = _save(builder.client, survey, p1, _first_page(survey), collector)
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "incomplete"
    response_id = r.json()["id"]

    r = _save(builder.client, survey, p2, _second_page(survey), collector, responseId=response_id)
    assert r.status_code == 200, r.text
    assert r.json() == {"id": response_id, "status": "complete"}

    stored = builder.client.get(f"/survey/{survey['id']}/responses", headers=builder.headers).json()
    assert [s["id"] for s in stored] == [response_id]
    assert stored[0]["status"] == "complete"
    assert stored[0]["browser"] == "Firefox"
    assert stored[0]["device"] == "PC"

    listed = builder.client.get(f"/survey/{survey['id']}/collectors", headers=builder.headers).json()
    assert listed[0]["total_responses"] == 1

    # a completed response cannot be reopened
    r = _save(builder.client, survey, p2, _second_page(survey), collector, responseId=response_id)
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "Unauthorized"

def test_resaving_a_page_replaces_its_answers(builder, survey, collector, count_rows):
    p1, _ = survey["pages"]
    r = _save(builder.client, survey, p1, _first_page(survey, "Ada"), collector)
    response_id = r.json()["id"]
    r = _save(builder.client, survey, p1, _first_page(survey, "Grace"), collector, responseId=response_id)
    assert r.status_code == 200, r.text

    text_id = survey["text"]["id"]
    assert count_rows(QuestionAnswer, QuestionAnswer.question_id == text_id) == 1
    assert count_rows(QuestionAnswer, QuestionAnswer.text_answer == "Grace") == 1

def test_structure_change_after_start_is_conflict(builder, survey, collector):
    p1, _ = survey["pages"]
    started = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()

    r = _save(builder.client, survey, p1, _first_page(survey), collector, startedAt=started)
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "Conflict"

def test_editing_a_question_bumps_the_survey(builder, survey, collector):
    p1, _ = survey["pages"]
    started = _now()
    builder.question(survey["id"], p1, builder.textbox("Added later"))

    r = _save(builder.client, survey, p1, _first_page(survey), collector, startedAt=started)
    assert r.status_code == 409

def test_missing_required_answer_is_rejected(builder, survey, collector):
    _, p2 = survey["pages"]
    r = _save(builder.client, survey, p2, [], collector)
    assert r.status_code == 400

    blank = [{"questionId": survey["multi"]["id"], "answer": [], "questionType": "checkbox"}]
    r = _save(builder.client, survey, p2, blank, collector)
    assert r.status_code == 400

def test_unknown_option_is_rejected(builder, survey, collector):
    p1, _ = survey["pages"]
    responses = _first_page(survey)
    responses[1]["answer"] = str(survey["multi"]["options"][0]["id"])

    r = _save(builder.client, survey, p1, responses, collector)
    assert r.status_code == 400

def test_closed_collector_rejects_responses(builder, survey, collector):
    builder.client.put(f"/collectors/{collector['id']}/status", json={"status": "closed"}, headers=builder.headers)
    p1, _ = survey["pages"]

    r = _save(builder.client, survey, p1, _first_page(survey), collector)
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "This collector is closed."

def test_collector_of_other_survey_is_rejected(builder, survey):
    other = builder.survey()
    foreign = builder.client.post("/collectors", json={"type": "web_link", "surveyId": other}, headers=builder.headers).json()
    p1, _ = survey["pages"]

    r = _save(builder.client, survey, p1, _first_page(survey), foreign)
    assert r.status_code == 400

def test_preview_stores_nothing(builder, survey):
    _, p2 = survey["pages"]

    r = _save(builder.client, survey, p2, _second_page(survey), isPreview=True)
    assert r.status_code == 200, r.text
    assert r.json() == {"id": "preview", "status": "complete"}
    assert builder.client.get(f"/survey/{survey['id']}/responses", headers=builder.headers).json() == []

def test_preview_and_collector_are_exclusive(builder, survey, collector):
    p1, _ = survey["pages"]
    r = _save(builder.client, survey, p1, _first_page(survey), collector, isPreview=True)
    assert r.status_code == 400
    r = _save(builder.client, survey, p1, _first_page(survey))
    assert r.status_code == 400

def test_dropping_an_option_deletes_its_answers(builder, survey, collector, count_rows):
    p1, _ = survey["pages"]
    r = _save(builder.client, survey, p1, _first_page(survey), collector)
    assert r.status_code == 200, r.text
    chosen, kept = survey["single"]["options"]
    assert count_rows(QuestionAnswer, QuestionAnswer.question_option_id == chosen["id"]) == 1

    data = {
        "id": survey["single"]["id"],
        "type": "multiple_choice",
        "description": "Happy?",
        "required": False,
        "randomize": False,
        "options": [{"id": kept["id"], "description": kept["description"], "number": 1}],
    }
    r = builder.client.put(f"/survey/{survey['id']}/question", json={"data": data}, headers=builder.headers)
    assert r.status_code == 200, r.text
    assert [o["id"] for o in r.json()["options"]] == [kept["id"]]
    assert count_rows(QuestionAnswer, QuestionAnswer.question_option_id == chosen["id"]) == 0

def test_repeated_checkbox_option_is_stored_once(builder, survey, collector, count_rows):
    _, p2 = survey["pages"]
    picked = str(survey["multi"]["options"][1]["id"])
    responses = [{"questionId": survey["multi"]["id"], "answer": [picked, picked], "questionType": "checkbox"}]

    r = _save(builder.client, survey, p2, responses, collector)
    assert r.status_code == 200, r.text
    assert count_rows(QuestionAnswer, QuestionAnswer.question_id == survey["multi"]["id"]) == 1

def _two_responses(builder, survey, collector):
    p1, p2 = survey["pages"]
    first = _save(builder.client, survey, p1, _first_page(survey, "Ada"), collector).json()["id"]
    _save(builder.client, survey, p2, _second_page(survey), collector, responseId=first)
    # the second responder skips the optional choice and stops after page 1
    only_name = _first_page(survey, "Grace")[:1]
    second = _save(builder.client, survey, p1, only_name, collector).json()["id"]
    return first, second

def test_page_results_count_answers_per_question_and_option(builder, survey, collector):
    _two_responses(builder, survey, collector)
    p1, p2 = survey["pages"]

    r = builder.client.get(f"/survey/{survey['id']}/questions/result", params={"pageId": p1}, headers=builder.headers)
    assert r.status_code == 200, r.text
    text, single = r.json()
    assert [text["id"], single["id"]] == [survey["text"]["id"], survey["single"]["id"]]

    assert (text["answered_count"], text["skipped_count"]) == (2, 0)
    assert [a["text"] for a in text["answers"]] == ["Ada", "Grace"]
    assert text["choices"] is None

    assert (single["answered_count"], single["skipped_count"]) == (1, 1)
    assert [(c["description"], c["answered_count"]) for c in single["choices"]] == [("Yes", 1), ("No", 0)]
    assert single["answers"] is None

    (multi,) = builder.client.get(
        f"/survey/{survey['id']}/questions/result", params={"pageId": p2}, headers=builder.headers
    ).json()
    assert (multi["answered_count"], multi["skipped_count"]) == (1, 1)
    assert [c["answered_count"] for c in multi["choices"]] == [1, 0, 1]

def test_results_for_selected_questions_follow_numbering(builder, survey, collector):
    _two_responses(builder, survey, collector)
    ids = [survey["multi"]["id"], survey["text"]["id"]]

    r = builder.client.post(f"/survey/{survey['id']}/questions/result", json={"questionIds": ids}, headers=builder.headers)
    assert r.status_code == 200, r.text
    assert [q["id"] for q in r.json()] == [survey["text"]["id"], survey["multi"]["id"]]
    assert [q["number"] for q in r.json()] == [1, 3]

    other = builder.survey()
    foreign = builder.question(other, builder.pages(other)[0]["id"], builder.textbox("elsewhere"))
    r = builder.client.post(
        f"/survey/{survey['id']}/questions/result", json={"questionIds": [foreign["id"]]}, headers=builder.headers
    )
    assert r.status_code == 400

def test_results_belong_to_owner(builder, survey):
    p1, _ = survey["pages"]
    r = builder.client.get(
        f"/survey/{survey['id']}/questions/result", params={"pageId": p1}, headers={"X-User-Id": "intruder"}
    )
    assert r.status_code == 401
    r = builder.client.get(f"/survey/{survey['id']}/responses/volume", headers={"X-User-Id": "intruder"})
    assert r.status_code == 401

def test_response_volume_covers_the_last_ten_days(builder, survey, collector):
    _two_responses(builder, survey, collector)

    r = builder.client.get(f"/survey/{survey['id']}/responses/volume", headers=builder.headers)
    assert r.status_code == 200, r.text
    volume = r.json()
    today = datetime.now(timezone.utc).date()
    assert len(volume) == 11
    assert volume[0]["day"] == (today - timedelta(days=10)).isoformat()
    assert volume[-1] == {"day": today.isoformat(), "response_count": 2}
    assert sum(v["response_count"] for v in volume) == 2
    days = [date.fromisoformat(v["day"]) for v in volume]
    assert days == sorted(days)

def test_single_response_and_its_page_answers(builder, survey, collector):
    first, _ = _two_responses(builder, survey, collector)
    p1, p2 = survey["pages"]

    r = builder.client.get(f"/survey/{survey['id']}/response/{first}", headers=builder.headers)
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "complete"

    r = builder.client.get(f"/survey/{survey['id']}/response/{first}/answers", params={"pageId": p2}, headers=builder.headers)
    assert r.status_code == 200, r.text
    data = r.json()
    assert [q["id"] for q in data["questions"]] == [survey["multi"]["id"]]
    (answered,) = data["question_responses"]
    options = survey["multi"]["options"]
    assert sorted(a["question_option_id"] for a in answered["answers"]) == sorted([options[0]["id"], options[2]["id"]])

    other = builder.survey()
    r = builder.client.get(f"/survey/{other}/response/{first}", headers=builder.headers)
    assert r.status_code == 404

def test_responder_reads_back_an_open_response(builder, survey, collector):
    first, second = _two_responses(builder, survey, collector)
    p1, _ = survey["pages"]

    # no X-User-Id: responders are anonymous
    r = builder.client.get(f"/survey/{survey['id']}/responseData", params={"pageId": p1, "responseId": second})
    assert r.status_code == 200, r.text
    data = r.json()
    assert [q["id"] for q in data["questions"]] == [survey["text"]["id"], survey["single"]["id"]]
    (answered,) = data["question_responses"]
    assert answered["question_id"] == survey["text"]["id"]
    assert answered["answers"][0]["text_answer"] == "Grace"

    r = builder.client.get(f"/survey/{survey['id']}/responseData", params={"pageId": p1})
    assert r.status_code == 200, r.text
    assert r.json()["question_responses"] == []

    r = builder.client.get(f"/survey/{survey['id']}/responseData", params={"pageId": p1, "responseId": first})
    assert r.status_code == 401
