TEMPLATE = {
    "monday": [
        {"period": 1, "subject": "Mathematik", "class_id": "5a"},
        {"period": 2, "subject": "Mathematik", "class_id": "5a"},
        {"period": 3, "subject": "Deutsch", "class_id": "5a"},
    ],
    "wednesday": [{"period": 2, "subject": "Mathematik", "class_id": "5a"}],
}


def _enable_fixed_schedule(client) -> None:
    response = client.put(
        "/api/schedule/settings",
        json={"schedule_type": "fixed", "fixed_schedule_template": TEMPLATE},
    )
    assert response.status_code == 200


def _create_subjects(client) -> dict[str, str]:
    ids = {}
    for name in ("Mathematik", "Deutsch"):
        created = client.post("/api/subjects/", json={"name": name, "class_id": "5a"})
        assert created.status_code == 201
        ids[name] = created.json()["id"]
    return ids


def _setup_fixed_schedule(client) -> dict[str, str]:
    _enable_fixed_schedule(client)
    return _create_subjects(client)


def _create_entry(client, subject_id: str, **extra) -> dict:
    payload = {"subject_id": subject_id, "class_id": "5a", "week_number": 1, "school_year": 2026}
    payload.update(extra)
    response = client.post("/api/yearly-lessons/", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_settings_defaults_and_time_slots(client):
    settings = client.get("/api/schedule/settings")
    assert settings.status_code == 200
    assert settings.json()["schedule_type"] == "flexible"
    assert settings.json()["lessons_per_day"] == 8

    slots = client.get("/api/schedule/time-slots").json()
    assert len(slots) == 8
    assert slots[2] == {"period": 3, "start": "09:55", "end": "10:40"}


def test_settings_reject_template_outside_day(client):
    response = client.put(
        "/api/schedule/settings",
        json={
            "schedule_type": "fixed",
            "lessons_per_day": 2,
            "fixed_schedule_template": {"monday": [{"period": 3, "subject": "Mathematik", "class_id": "5a"}]},
        },
    )
    assert response.status_code == 422


def test_duplicate_subject_conflicts(client):
    assert client.post("/api/subjects/", json={"name": "Musik", "class_id": "5a"}).status_code == 201
    response = client.post("/api/subjects/", json={"name": "Musik", "class_id": "5a"})
    assert response.status_code == 409
    assert response.json()["details"] == {"name": "Musik", "class_id": "5a"}


def test_creating_entries_fills_weekly_grid(client):
    ids = _setup_fixed_schedule(client)
    first = _create_entry(client, ids["Mathematik"])
    second = _create_entry(client, ids["Mathematik"])

    assert first["entry"]["lesson_number"] == 1
    assert second["sync"]["placement"] == {"day": "monday", "period": 2}

    lessons = client.get("/api/lessons/", params={"week_number": 1}).json()
    assert sorted((lesson["day_of_week"], lesson["period_slot"]) for lesson in lessons) == [
        ("monday", 1),
        ("monday", 2),
    ]

    free = client.get("/api/lessons/free-slot", params={"week_number": 1, "day": "Monday"})
    assert free.json() == {"day": "monday", "period": 3}


def test_unknown_entry_returns_not_found(client):
    response = client.get("/api/yearly-lessons/missing")
    assert response.status_code == 404
    assert "missing" in response.json()["message"]


def test_topic_toggle_and_gap_report(client):
    ids = _setup_fixed_schedule(client)
    first = _create_entry(client, ids["Mathematik"], lesson_number=1)["entry"]
    third = _create_entry(client, ids["Mathematik"], lesson_number=3)["entry"]

    report = client.get(
        "/api/yearly-lessons/gaps",
        params={"week_number": 1, "subject_id": ids["Mathematik"], "topic_id": "poems"},
    )
    assert report.json()["missing_lesson_numbers"] == []

    toggled = client.post(
        "/api/yearly-lessons/topic",
        json={"yearly_lesson_ids": [first["id"], third["id"]], "topic_id": "poems"},
    )
    assert toggled.status_code == 200
    assert [entry["lesson_number"] for entry in toggled.json()["gap_lessons"]] == [2]

    report = client.get(
        "/api/yearly-lessons/gaps",
        params={"week_number": 1, "subject_id": ids["Mathematik"], "topic_id": "poems"},
    )
    assert report.json()["missing_lesson_numbers"] == []


def test_double_lesson_endpoint(client):
    ids = _setup_fixed_schedule(client)
    first = _create_entry(client, ids["Mathematik"])["entry"]
    second = _create_entry(client, ids["Mathematik"])["entry"]

    response = client.post(f"/api/yearly-lessons/{first['id']}/double", json={"enabled": True})
    assert response.status_code == 200
    assert response.json()["primary"]["second_yearly_lesson_id"] == second["id"]

    lessons = client.get("/api/lessons/", params={"week_number": 1}).json()
    assert [(lesson["period_slot"], lesson["period_span"]) for lesson in lessons] == [(1, 2)]


def test_generate_requires_fixed_schedule(client):
    response = client.post("/api/schedule/generate", json={"school_year": 2026})
    assert response.status_code == 422
    assert response.json()["message"] == "Schedule generation requires a fixed schedule"


def test_generate_skips_weeks_with_lessons(client):
    ids = _create_subjects(client)
    math = _create_entry(client, ids["Mathematik"])["entry"]
    german = _create_entry(client, ids["Deutsch"], week_number=2)
    assert german["sync"]["reason"] == "not_fixed_schedule"
    _enable_fixed_schedule(client)
    assert client.post(f"/api/yearly-lessons/{math['id']}/sync").json()["action"] == "created"

    response = client.post("/api/schedule/generate", json={"school_year": 2026})

    assert response.status_code == 201
    stats = response.json()["stats"]
    assert stats["total_created"] == 1
    assert {"week": 1, "reason": "already_exists", "count": 1} in stats["skipped_details"]
    created = response.json()["lessons"][0]
    assert (created["week_number"], created["day_of_week"], created["period_slot"]) == (2, "monday", 3)


def test_allerlei_merge_and_unlink(client):
    ids = _setup_fixed_schedule(client)
    math = _create_entry(client, ids["Mathematik"], name="Bruchrechnen")["entry"]
    german = _create_entry(client, ids["Deutsch"], name="Diktat")["entry"]
    payload = {
        "week_number": 1,
        "day_of_week": "tuesday",
        "period_slot": 1,
        "assignments": [
            {"subject": "Mathematik", "yearly_lesson_id": math["id"]},
            {"subject": "Deutsch", "yearly_lesson_id": german["id"]},
        ],
    }

    assert client.post("/api/allerlei/validate", json=payload).json() == {"valid": True}
    created = client.post("/api/allerlei/", json=payload)
    assert created.status_code == 201
    group_id = created.json()["group"]["id"]

    visible = client.get("/api/lessons/", params={"week_number": 1}).json()
    assert [(lesson["day_of_week"], lesson["is_allerlei"]) for lesson in visible] == [("tuesday", True)]
    assert client.get(f"/api/yearly-lessons/{german['id']}").json()["name"] == "Diktat (Allerlei)"

    unlinked = client.post(f"/api/allerlei/{group_id}/unlink")
    assert unlinked.status_code == 200
    assert unlinked.json()["unscheduled_yearly_lesson_ids"] == [german["id"]]
    assert client.get(f"/api/yearly-lessons/{german['id']}").json()["name"] == "Diktat"
    visible = client.get("/api/lessons/", params={"week_number": 1}).json()
    assert [(lesson["day_of_week"], lesson["period_slot"]) for lesson in visible] == [("monday", 1)]


def test_allerlei_validation_error_shape(client):
    response = client.post(
        "/api/allerlei/validate",
        json={
            "week_number": 1,
            "day_of_week": "monday",
            "period_slot": 1,
            "assignments": [{"subject": "Mathematik", "yearly_lesson_id": "a"}, {"subject": "Deutsch"}],
        },
    )
    assert response.status_code == 422
    assert response.json()["details"] == {"subjects_without_lesson": ["Deutsch"]}


def test_moving_lesson_onto_occupied_slot_uses_alternative(client):
    ids = _setup_fixed_schedule(client)
    _create_entry(client, ids["Mathematik"])
    _create_entry(client, ids["Mathematik"])
    lessons = client.get("/api/lessons/", params={"week_number": 1}).json()
    first = next(lesson for lesson in lessons if lesson["period_slot"] == 1)
    second = next(lesson for lesson in lessons if lesson["period_slot"] == 2)

    redirected = client.patch(f"/api/lessons/{first['id']}", json={"period_slot": 2})
    assert redirected.status_code == 200
    body = redirected.json()
    assert (body["day_of_week"], body["period_slot"]) == ("monday", 4)
    assert (body["start_time"], body["end_time"]) == ("10:45", "11:30")

    moved = client.patch(f"/api/lessons/{second['id']}", json={"day_of_week": "friday", "period_slot": 8})
    assert moved.status_code == 200
    assert (moved.json()["start_time"], moved.json()["end_time"]) == ("14:50", "15:35")

    rejected = client.patch(f"/api/lessons/{first['id']}", json={"day_of_week": "friday", "period_slot": 8})
    assert rejected.status_code == 422
    assert rejected.json()["details"] == {"day_of_week": "friday", "period_slot": 8}
    assert client.get("/api/lessons/", params={"week_number": 1}).json()[0]["period_slot"] == 4


def test_delete_entry_removes_weekly_lesson(client):
    ids = _setup_fixed_schedule(client)
    entry = _create_entry(client, ids["Mathematik"])["entry"]

    assert client.delete(f"/api/yearly-lessons/{entry['id']}").status_code == 204
    assert client.get("/api/lessons/", params={"week_number": 1}).json() == []


def test_generate_ignores_lessons_of_other_school_years(client):
    ids = _create_subjects(client)
    _create_entry(client, ids["Mathematik"])
    previous_year = _create_entry(client, ids["Mathematik"], school_year=2025)["entry"]
    _enable_fixed_schedule(client)
    synced = client.post(f"/api/yearly-lessons/{previous_year['id']}/sync").json()
    assert synced["action"] == "created"

    response = client.post("/api/schedule/generate", json={"school_year": 2026})

    assert response.status_code == 201
    stats = response.json()["stats"]
    assert stats["total_created"] == 1
    assert not any(item["reason"] == "already_exists" for item in stats["skipped_details"])
    created = response.json()["lessons"][0]
    assert (created["school_year"], created["week_number"], created["period_slot"]) == (2026, 1, 1)


def test_planning_mirror_follows_requests(client, planning_store):
    ids = _setup_fixed_schedule(client)
    first = _create_entry(client, ids["Mathematik"], lesson_number=1, topic_id="poems")["entry"]
    created = _create_entry(client, ids["Mathematik"], lesson_number=3, topic_id="poems")
    third = created["entry"]
    gap = created["gap_lessons"][0]

    state = planning_store.state
    assert {entry.id for entry in state.yearly_lessons} == {first["id"], third["id"], gap["id"]}
    assert dict(state.pending) == {}
    assert len(state.lessons) == 3

    assert client.delete(f"/api/yearly-lessons/{third['id']}").status_code == 204
    state = planning_store.state
    assert third["id"] not in {entry.id for entry in state.yearly_lessons}
    assert third["id"] not in {lesson.yearly_lesson_id for lesson in state.lessons}

    listed = client.get("/api/lessons/", params={"week_number": 1}).json()
    state = planning_store.state
    assert {lesson.id for lesson in state.lessons} == {lesson["id"] for lesson in listed}
    assert planning_store.is_current("lessons:1:None", state.current_requests["lessons:1:None"])

    ready = client.get("/api/health/ready").json()
    assert ready["planning_mirror"] == {"yearly_lessons": 2, "lessons": 2, "pending": 0}
