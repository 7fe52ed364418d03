"""API tests for the portfolio, reference data, category and CV ingestion routers."""

import pytest


def _portfolio(user_id: str, **overrides) -> dict:
    data = {
        "user_id": user_id,
        "employee_code": "EMP-1",
        "designation": "Backend Engineer",
        "years_of_experience": 5,
        "email": f"{user_id}@example.com",
        "summary": "Builds APIs",
        "education": [{"degree": "Bachelor of Science", "institution": "Stanford University", "passing_year": 2016}],
        "technical_skills": [{"category": "1", "skills": [{"skill_id": "10", "proficiency": "Advanced"}]}],
        "is_public": True,
    }
    data.update(overrides)
    return data


class TestHealth:
    async def test_root_and_health(self, client):
        assert (await client.get("/health")).json() == {"status": "healthy"}
        assert (await client.get("/")).json()["status"] == "running"

    async def test_api_responses_not_cached(self, client):
        response = await client.get("/api/categories")
        assert response.headers["cache-control"] == "no-cache, no-store, must-revalidate"


class TestPortfolioRouter:
    async def test_upsert_and_fetch(self, client):
        created = await client.post("/api/portfolio", json=_portfolio("u1"))
        assert created.status_code == 200
        body = created.json()
        assert body["user_id"] == "u1"
        assert body["visit_count"] == 0
        assert body["education"][0]["institution"] == "Stanford University"

        updated = await client.post("/api/portfolio", json=_portfolio("u1", designation="Staff Engineer"))
        assert updated.json()["id"] == body["id"]
        assert updated.json()["designation"] == "Staff Engineer"

        fetched = await client.get("/api/portfolio", params={"user_id": "u1"})
        assert fetched.json()["designation"] == "Staff Engineer"

    async def test_upsert_requires_user_id(self, client):
        response = await client.post("/api/portfolio", json={"designation": "Engineer"})
        assert response.status_code == 400

    async def test_missing_portfolio(self, client):
        assert (await client.get("/api/portfolio", params={"user_id": "nobody"})).status_code == 404
        assert (await client.delete("/api/portfolio", params={"user_id": "nobody"})).status_code == 404

    async def test_list_requires_user_or_public(self, client):
        assert (await client.get("/api/portfolio")).status_code == 400

    async def test_public_directory_filters(self, client):
        await client.post("/api/portfolio", json=_portfolio("senior", years_of_experience=10))
        await client.post("/api/portfolio", json=_portfolio("junior", years_of_experience=1, technical_skills=[]))
        await client.post("/api/portfolio", json=_portfolio("hidden", is_public=False))

        everyone = await client.get("/api/portfolio", params={"public": "true"})
        assert {p["user_id"] for p in everyone.json()} == {"senior", "junior"}

        experienced = await client.get("/api/portfolio", params={"public": "true", "min_years": 3})
        assert [p["user_id"] for p in experienced.json()] == ["senior"]

        by_skill = await client.get("/api/portfolio", params={"public": "true", "skill_id": "10"})
        assert [p["user_id"] for p in by_skill.json()] == ["senior"]

        by_institution = await client.get("/api/portfolio", params={"public": "true", "institution": "stanford"})
        assert len(by_institution.json()) == 2

        by_text = await client.get("/api/portfolio", params={"public": "true", "q": "apis"})
        assert len(by_text.json()) == 2

    async def test_visit_counter_and_delete(self, client):
        await client.post("/api/portfolio", json=_portfolio("u1"))
        await client.post("/api/portfolio/u1/visit")
        second = await client.post("/api/portfolio/u1/visit")
        assert second.json() == {"user_id": "u1", "visit_count": 2}

        assert (await client.delete("/api/portfolio", params={"user_id": "u1"})).status_code == 200
        assert (await client.post("/api/portfolio/u1/visit")).status_code == 404

    async def test_validate_step(self, client):
        response = await client.post("/api/portfolio/validate", params={"step": 2}, json={})
        assert response.json() == {
            "step": 2,
            "is_valid": False,
            "errors": ["At least one education entry is required"],
        }
        assert (await client.post("/api/portfolio/validate", params={"step": 7}, json={})).status_code == 422


class TestReferenceRouter:
    async def test_degree_soft_delete(self, client):
        created = (await client.post("/api/degrees", json={"name": "Master of Arts", "short_name": "MA"})).json()
        assert created["level"] == "Undergraduate"

        updated = await client.put(f"/api/degrees/{created['id']}", json={"level": "Postgraduate"})
        assert updated.json()["level"] == "Postgraduate"
        assert updated.json()["short_name"] == "MA"

        await client.delete(f"/api/degrees/{created['id']}")
        assert (await client.get("/api/degrees")).json() == []
        inactive = (await client.get("/api/degrees", params={"include_inactive": "true"})).json()
        assert inactive[0]["is_active"] is False

    async def test_institution_crud(self, client):
        created = (await client.post("/api/institutions", json={"name": "MIT", "location": "Cambridge"})).json()
        assert created["is_verified"] is False
        await client.put(f"/api/institutions/{created['id']}", json={"is_verified": True})
        listed = (await client.get("/api/institutions")).json()
        assert listed[0]["is_verified"] is True
        assert (await client.delete("/api/institutions/999")).status_code == 404

    async def test_skills_by_category(self, client):
        category = (await client.post("/api/categories", json={"name": "Backend"})).json()
        await client.post("/api/skills", json={"name": "FastAPI", "category_id": category["id"]})
        await client.post("/api/skills", json={"name": "Figma"})

        in_category = (await client.get("/api/skills", params={"category_id": category["id"]})).json()
        assert [s["name"] for s in in_category] == ["FastAPI"]
        assert len((await client.get("/api/skills")).json()) == 2

        assert (await client.post("/api/skills", json={"name": "Go", "category_id": 999})).status_code == 404

        skill_id = in_category[0]["id"]
        assert (await client.delete(f"/api/skills/{skill_id}")).status_code == 200
        assert len((await client.get("/api/skills")).json()) == 1


class TestCategoriesRouter:
    async def test_crud(self, client):
        created = await client.post("/api/categories", json={"name": "Cloud"})
        assert created.status_code == 200
        category_id = created.json()["id"]

        duplicate = await client.post("/api/categories", json={"name": "cloud"})
        assert duplicate.status_code == 400

        renamed = await client.put("/api/categories", json={"id": category_id, "name": "Cloud Platforms"})
        assert renamed.json()["name"] == "Cloud Platforms"

        assert (await client.put("/api/categories", json={"name": "No id"})).status_code == 400
        assert (await client.delete("/api/categories")).status_code == 400
        assert (await client.delete("/api/categories", params={"id": category_id})).status_code == 200
        assert (await client.get("/api/categories")).json() == []

    async def test_request_approval_creates_category_and_skills(self, client):
        request = (await client.post("/api/categories/requests", json={
            "user_id": "u1",
            "category_name": "Game Development",
            "suggested_skills": ["Unity", " Godot ", ""],
            "reason": "Not covered",
        })).json()
        assert request["status"] == "Pending"
        assert request["suggested_skills"] == ["Unity", "Godot"]

        pending = (await client.get("/api/categories/requests", params={"status": "Pending"})).json()
        assert [r["id"] for r in pending] == [request["id"]]

        approved = (await client.put("/api/categories/requests", json={"id": request["id"], "status": "Approved"})).json()
        assert approved["admin_comment"] == "Approved by admin"

        categories = (await client.get("/api/categories")).json()
        assert [c["name"] for c in categories] == ["Game Development"]
        skills = (await client.get("/api/skills", params={"category_id": categories[0]["id"]})).json()
        assert [s["name"] for s in skills] == ["Godot", "Unity"]

    async def test_rejection(self, client):
        request = (await client.post("/api/categories/requests", json={
            "user_id": "u2", "category_name": "Astrology",
        })).json()
        rejected = (await client.put("/api/categories/requests", json={"id": request["id"], "status": "Rejected"})).json()
        assert rejected["admin_comment"] == "Rejected by admin"
        assert (await client.get("/api/categories")).json() == []

    async def test_request_validation(self, client):
        response = await client.post("/api/categories/requests", json={"user_id": " ", "category_name": "X"})
        assert response.status_code == 400


class TestCVIngestionRouter:
    async def test_parse_and_apply(self, client, sample_cv_text):
        parsed = await client.post(
            "/api/cv-parse",
            files={"file": ("jane.txt", sample_cv_text.encode("utf-8"), "text/plain")},
        )
        assert parsed.status_code == 200
        body = parsed.json()
        assert body["success"] is True
        assert body["parsed_cv"]["personal_info"]["email"] == "jane.doe@example.com"
        assert body["validation"]["is_valid"] is True
        assert 'Degree "Bachelor of Science in Computer Science" not found in database, will be created' in body["warnings"]

        applied = await client.post("/api/cv-ingestion/apply", json={
            "parsed_cv": body["parsed_cv"],
            "normalization_result": body["normalization_result"],
        })
        assert applied.status_code == 200
        result = applied.json()
        assert result["created"] == {"skills": 7, "categories": 3, "degrees": 1, "institutions": 1}
        assert result["failed"] == []
        assert result["remaining_unmapped"] == {"skills": [], "institutions": [], "degrees": [], "categories": []}
        assert result["form_data"]["education"][0]["institution"] == "Stanford University"

        suggestions = await client.get(
            "/api/cv-ingestion/suggestions", params={"entity_type": "skill", "q": "Reac"}
        )
        assert suggestions.json()[0]["name"] == "React"

    @pytest.mark.parametrize("filename,content,detail", [
        ("cv.png", b"data", "Unsupported file type: .png. Please upload PDF, DOCX, DOC, or TXT files."),
        ("cv.txt", b"", "Uploaded file is empty"),
    ])
    async def test_parse_rejects_bad_uploads(self, client, filename, content, detail):
        response = await client.post("/api/cv-parse", files={"file": (filename, content, "application/octet-stream")})
        assert response.status_code == 400
        assert response.json()["detail"] == detail

    async def test_parse_requires_file(self, client):
        response = await client.post("/api/cv-parse", data={"use_llm": "false"})
        assert response.status_code == 400
        assert response.json()["detail"] == "No file provided"

    async def test_parse_rejects_unknown_provider(self, client, sample_cv_text):
        response = await client.post(
            "/api/cv-parse",
            data={"use_llm": "true", "llm_provider": "mistral"},
            files={"file": ("cv.txt", sample_cv_text.encode(), "text/plain")},
        )
        assert response.status_code == 400

    async def test_extraction_failure_is_500(self, client):
        response = await client.post("/api/cv-parse", files={"file": ("cv.pdf", b"not a pdf", "application/pdf")})
        assert response.status_code == 500
        assert response.json()["success"] is False
        assert response.json()["error"]["code"] == "EXTRACTION_ERROR"

    async def test_suggestions_bad_type(self, client):
        response = await client.get("/api/cv-ingestion/suggestions", params={"entity_type": "company", "q": "x"})
        assert response.status_code == 400
