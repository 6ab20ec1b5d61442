from concurrent.futures import ThreadPoolExecutor

from sqlmodel import select

from engconnect.models import Idea
from engconnect.schemas import Role


def test_register_login_submit_then_duplicate(client, session, make_user, make_problem):
    problem = make_problem(make_user("acme", Role.company))
    client.post("/api/users/register", json={"username": "ada", "password": "pw1234", "university": "MIT"})
    token = client.post("/api/users/login", json={"username": "ada", "password": "pw1234"}).json()["token"]
    headers = {"Authorization": f"Bearer {token}"}
    body = {"problemId": problem.id, "ideaText": "Use helical gears", "implementationApproach": "Prototype first"}

    first = client.post("/api/ideas/", json=body, headers=headers)
    second = client.post("/api/ideas/", json=body, headers=headers)

    assert first.status_code == 201
    assert first.json()["ideaText"] == "Use helical gears"
    assert first.json()["problemId"] == problem.id
    assert second.status_code == 400
    assert second.json() == {
        "kind": "DuplicateSubmission",
        "message": "You have already submitted an idea for this problem.",
    }
    assert len(session.exec(select(Idea)).all()) == 1


def test_duplicate_status_can_be_409(client, monkeypatch, make_user, make_problem, auth_header):
    monkeypatch.setenv("ENGCONNECT_DUPLICATE_STATUS", "409")
    student = make_user("s1")
    problem = make_problem(make_user("acme", Role.company))
    body = {"problemId": problem.id, "ideaText": "idea"}

    client.post("/api/ideas/", json=body, headers=auth_header(student))
    second = client.post("/api/ideas/", json=body, headers=auth_header(student))

    assert second.status_code == 409
    assert second.json()["kind"] == "DuplicateSubmission"


def test_concurrent_duplicate_requests_store_one_idea(client, session, make_user, make_problem, auth_header):
    student = make_user("s1")
    problem = make_problem(make_user("acme", Role.company))
    headers = auth_header(student)
    body = {"problemId": problem.id, "ideaText": "idea"}

    with ThreadPoolExecutor(max_workers=2) as pool:
        statuses = sorted(pool.map(lambda _: client.post("/api/ideas/", json=body, headers=headers).status_code, range(2)))

    assert statuses == [201, 400]
    assert len(session.exec(select(Idea)).all()) == 1


def test_only_students_submit_ideas(client, make_user, make_problem, auth_header):
    company = make_user("acme", Role.company)
    problem = make_problem(company)

    response = client.post("/api/ideas/", json={"problemId": problem.id, "ideaText": "x"}, headers=auth_header(company))

    assert response.status_code == 403


def test_idea_for_missing_problem_is_404(client, make_user, auth_header):
    response = client.post("/api/ideas/", json={"problemId": 77, "ideaText": "x"}, headers=auth_header(make_user("s1")))

    assert response.status_code == 404


def test_blank_idea_fails_validation(client, make_user, make_problem, auth_header):
    problem = make_problem(make_user("acme", Role.company))

    response = client.post("/api/ideas/", json={"problemId": problem.id, "ideaText": " "}, headers=auth_header(make_user("s1")))

    assert response.status_code == 400
    assert response.json()["kind"] == "ValidationFailed"


def test_company_sees_ideas_only_for_own_problems(client, make_user, make_problem, auth_header):
    owner = make_user("acme", Role.company)
    rival = make_user("globex", Role.company)
    student = make_user("s1", university="MIT")
    problem = make_problem(owner)
    client.post("/api/ideas/", json={"problemId": problem.id, "ideaText": "idea"}, headers=auth_header(student))

    mine = client.get(f"/api/ideas/problem/{problem.id}", headers=auth_header(owner))
    theirs = client.get(f"/api/ideas/problem/{problem.id}", headers=auth_header(rival))

    assert mine.status_code == 200
    assert mine.json()[0]["student"] == {"id": student.id, "username": "s1", "university": "MIT"}
    assert theirs.status_code == 403
    assert theirs.json()["kind"] == "OwnershipDenied"


def test_admin_lists_all_ideas_and_fetches_one(client, make_user, make_problem, auth_header):
    admin = make_user("root", Role.admin)
    student = make_user("s1")
    problem = make_problem(make_user("acme", Role.company))
    created = client.post("/api/ideas/", json={"problemId": problem.id, "ideaText": "idea"}, headers=auth_header(student)).json()

    listing = client.get("/api/ideas/", headers=auth_header(admin))
    single = client.get(f"/api/ideas/{created['id']}", headers=auth_header(admin))
    missing = client.get("/api/ideas/999", headers=auth_header(admin))
    as_student = client.get("/api/ideas/", headers=auth_header(student))

    assert [idea["id"] for idea in listing.json()] == [created["id"]]
    assert single.json()["student"]["username"] == "s1"
    assert missing.status_code == 404
    assert as_student.status_code == 403


def test_student_lists_own_ideas(client, make_user, make_problem, auth_header):
    student = make_user("s1")
    other = make_user("s2")
    problem = make_problem(make_user("acme", Role.company))
    client.post("/api/ideas/", json={"problemId": problem.id, "ideaText": "mine"}, headers=auth_header(student))
    client.post("/api/ideas/", json={"problemId": problem.id, "ideaText": "theirs"}, headers=auth_header(other))

    response = client.get("/api/ideas/mine", headers=auth_header(student))

    assert [idea["ideaText"] for idea in response.json()] == ["mine"]
