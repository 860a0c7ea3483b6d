from fastapi import status

from models.assignment.assignment_models import Assignment


def test_fourth_assignment_evicts_the_oldest(client, register, make_chat, session_factory):
    _, a_headers, _ = register("Alice")
    chat = make_chat(a_headers)
    ids = []
    for n in range(4):
        r = client.post(f"/api/chats/{chat['id']}/assignments", json={"title": f"HW{n}"}, headers=a_headers)
        assert r.status_code == status.HTTP_200_OK, r.text
        assert r.json()["status"] == "open"
        ids.append(r.json()["id"])

    db = session_factory()
    try:
        rows = db.query(Assignment).filter_by(chat_id=chat["id"]).all()
        assert sorted(a.id for a in rows) == sorted(ids[1:])
    finally:
        db.close()

    r = client.get(f"/api/chats/{chat['id']}/assignments", headers=a_headers)
    assert [a["title"] for a in r.json()["assignments"]] == ["HW3", "HW2", "HW1"]


def test_retention_is_per_chat(client, register, make_chat):
    _, a_headers, _ = register("Alice")
    first = make_chat(a_headers, title="One")
    second = make_chat(a_headers, title="Two")
    for n in range(3):
        client.post(f"/api/chats/{first['id']}/assignments", json={"title": f"A{n}"}, headers=a_headers)
    client.post(f"/api/chats/{second['id']}/assignments", json={"title": "B0"}, headers=a_headers)

    assert len(client.get(f"/api/chats/{first['id']}/assignments", headers=a_headers).json()["assignments"]) == 3
    assert len(client.get(f"/api/chats/{second['id']}/assignments", headers=a_headers).json()["assignments"]) == 1


def test_who_may_create_assignments(client, register, make_chat):
    _, a_headers, _ = register("Alice")
    student, s_headers, _ = register("Sam")
    teacher, t_headers, _ = register("Tess", role="teacher")
    chat = make_chat(a_headers, member_ids=[student["id"], teacher["id"]])

    r = client.post(f"/api/chats/{chat['id']}/assignments", json={"title": "HW"}, headers=s_headers)
    assert r.status_code == status.HTTP_403_FORBIDDEN
    # teacher accounts may post as plain members
    r = client.post(f"/api/chats/{chat['id']}/assignments", json={"title": "HW"}, headers=t_headers)
    assert r.status_code == status.HTTP_200_OK

    client.put(f"/api/chats/{chat['id']}/members/{student['id']}", json={"role": "moderator"}, headers=a_headers)
    r = client.post(f"/api/chats/{chat['id']}/assignments", json={"title": "HW2"}, headers=s_headers)
    assert r.status_code == status.HTTP_200_OK


def test_teacher_outside_chat_is_forbidden(client, register, make_chat):
    _, a_headers, _ = register("Alice")
    _, t_headers, _ = register("Tess", role="teacher")
    chat = make_chat(a_headers)
    r = client.post(f"/api/chats/{chat['id']}/assignments", json={"title": "HW"}, headers=t_headers)
    assert r.status_code == status.HTTP_403_FORBIDDEN
    assert r.json()["detail"] == "Not a member"


def test_assignment_requires_title(client, register, make_chat):
    _, a_headers, _ = register("Alice")
    chat = make_chat(a_headers)
    r = client.post(f"/api/chats/{chat['id']}/assignments", json={"description": "no title"}, headers=a_headers)
    assert r.status_code == status.HTTP_400_BAD_REQUEST


def test_close_assignment(client, register, make_chat):
    _, a_headers, _ = register("Alice")
    teacher, t_headers, _ = register("Tess", role="teacher")
    chat = make_chat(a_headers, member_ids=[teacher["id"]])
    assignment = client.post(f"/api/chats/{chat['id']}/assignments", json={"title": "HW"}, headers=t_headers).json()

    # closing needs a moderator or owner, the teacher account alone is not enough
    r = client.post(f"/api/assignments/{assignment['id']}/close", headers=t_headers)
    assert r.status_code == status.HTTP_403_FORBIDDEN
    r = client.post(f"/api/assignments/{assignment['id']}/close", headers=a_headers)
    assert r.status_code == status.HTTP_200_OK

    r = client.get(f"/api/chats/{chat['id']}/assignments", headers=a_headers)
    assert r.json()["assignments"][0]["status"] == "closed"

    assert client.post("/api/assignments/999/close", headers=a_headers).status_code == status.HTTP_404_NOT_FOUND


def test_submissions(client, register, make_chat, upload_dir):
    _, a_headers, _ = register("Alice")
    student, s_headers, _ = register("Sam")
    _, x_headers, _ = register("Mallory")
    chat = make_chat(a_headers, member_ids=[student["id"]])
    assignment = client.post(f"/api/chats/{chat['id']}/assignments", json={"title": "Essay"}, headers=a_headers).json()
    url = f"/api/assignments/{assignment['id']}/submissions"

    r = client.post(url, headers=s_headers)
    assert r.status_code == status.HTTP_400_BAD_REQUEST

    r = client.post(url, files={"file": ("essay v1.docx", b"draft", "application/octet-stream")}, headers=s_headers)
    assert r.status_code == status.HTTP_200_OK, r.text
    body = r.json()
    assert body["file_name"] == "essay v1.docx"
    assert body["file_path"].endswith("_essay_v1.docx")

    r = client.post(url, files={"file": ("x.txt", b"x", "text/plain")}, headers=x_headers)
    assert r.status_code == status.HTTP_403_FORBIDDEN
    assert client.get(url, headers=x_headers).status_code == status.HTTP_403_FORBIDDEN

    r = client.get(url, headers=a_headers)
    assert [s["user_id"] for s in r.json()["submissions"]] == [student["id"]]


def test_closed_assignment_rejects_submissions(client, register, make_chat, upload_dir):
    _, a_headers, _ = register("Alice")
    student, s_headers, _ = register("Sam")
    chat = make_chat(a_headers, member_ids=[student["id"]])
    assignment = client.post(f"/api/chats/{chat['id']}/assignments", json={"title": "Essay"}, headers=a_headers).json()
    client.post(f"/api/assignments/{assignment['id']}/close", headers=a_headers)

    r = client.post(
        f"/api/assignments/{assignment['id']}/submissions",
        files={"file": ("late.txt", b"late", "text/plain")},
        headers=s_headers,
    )
    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert list(upload_dir.iterdir()) == []


def test_retention_removes_submission_files(client, register, make_chat, upload_dir):
    _, a_headers, _ = register("Alice")
    student, s_headers, _ = register("Sam")
    chat = make_chat(a_headers, member_ids=[student["id"]])
    first = client.post(f"/api/chats/{chat['id']}/assignments", json={"title": "HW0"}, headers=a_headers).json()
    r = client.post(
        f"/api/assignments/{first['id']}/submissions",
        files={"file": ("answer.txt", b"42", "text/plain")},
        headers=s_headers,
    )
    assert r.status_code == status.HTTP_200_OK, r.text
    assert len(list(upload_dir.iterdir())) == 1

    for n in range(1, 4):
        client.post(f"/api/chats/{chat['id']}/assignments", json={"title": f"HW{n}"}, headers=a_headers)

    assert client.get(f"/api/assignments/{first['id']}/submissions", headers=a_headers).status_code == status.HTTP_404_NOT_FOUND
    assert list(upload_dir.iterdir()) == []
