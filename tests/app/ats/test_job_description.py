from resume_assistant.app.ats.job_description import (
    detect_seniority,
    extract_job,
    extract_keywords,
    extract_title,
    job_keywords,
)

JOB_TEXT = """Position: Senior Backend Engineer

Responsibilities:
- Design and build REST APIs
- Mentor junior engineers

Requirements:
- Python and SQL experience
- Experience with PostgreSQL and Docker

Nice to have:
- Kubernetes experience
"""


def test_extract_job_sections():
    """Test that bulleted lines are collected under their headers."""
    job = extract_job(JOB_TEXT)
    assert job.title == "Senior Backend Engineer"
    assert job.responsibilities == ["Design and build REST APIs", "Mentor junior engineers"]
    assert job.must_have == ["Python and SQL experience", "Experience with PostgreSQL and Docker"]
    assert job.nice_to_have == ["Kubernetes experience"]
    assert job.seniority == "senior"


def test_extract_job_empty():
    """Test that empty text yields an empty extraction."""
    job = extract_job("   ")
    assert job.title == ""
    assert job.must_have == []


def test_extract_job_falls_back_to_keywords():
    """Test keyword extraction when there is no requirements section."""
    job = extract_job("We need someone who knows Python, AWS and Docker.")
    assert job.must_have == ["python", "aws", "docker"]
    assert job.title == ""
    assert job.seniority == "mid"


def test_job_keywords_deduplicates_across_lists():
    """Test that must-have tokens are not repeated as nice-to-have."""
    job = extract_job(JOB_TEXT + "- Python tooling\n")
    must, nice = job_keywords(job)
    assert must == ["python", "sql", "postgresql", "docker"]
    assert nice == ["kubernetes", "tooling"]


def test_extract_title_variants():
    """Test the explicit label and the capitalized first line."""
    assert extract_title("Role: Data Analyst\nmore text") == "Data Analyst"
    assert extract_title("Staff Platform Engineer\nabout the team") == "Staff Platform Engineer"
    assert extract_title("no title here") == ""


def test_detect_seniority():
    """Test the seniority buckets."""
    assert detect_seniority("Director of Engineering") == "executive"
    assert detect_seniority("Lead Developer") == "senior"
    assert detect_seniority("Junior Analyst") == "entry"
    assert detect_seniority("Developer") == "mid"


def test_extract_keywords_order_and_dedup():
    """Test that technical terms come first and duplicates are dropped."""
    keywords = extract_keywords("Build GraphQL services. Python, python and Terraform.")
    assert keywords[:3] == ["graphql", "python", "terraform"]
    assert "Build" in keywords
    assert len([k for k in keywords if k.lower() == "python"]) == 1
