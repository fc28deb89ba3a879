from __future__ import annotations

import pytest

from app.models.contact import SocialLinks
from app.services.discovery.extractor import (
    ContactExtractor,
    infer_beat,
    is_valid_name,
    is_valid_title,
    score_candidate,
)

BASE_URL = "https://outlet.com/staff"

JANE_CARD = """
<html><body>
  <div class="card">
    <h3 class="name">Jane Doe</h3>
    <p class="title">Senior Technology Reporter</p>
    <a href="mailto:jane@outlet.com">Email</a>
    <a href="https://twitter.com/janedoe">Twitter</a>
  </div>
</body></html>
"""

STAFF_LISTING = """
<html><body>
<section class="staff-list">
  <div class="staff-member">
    <h2 class="name">Maria Lopez</h2>
    <span class="position">Politics Correspondent</span>
    <img src="/img/maria.jpg" alt="Maria">
    <p class="bio">Maria Lopez covers Congress, the White House and election policy for the national desk.</p>
    <a href="https://www.linkedin.com/in/marialopez">LinkedIn</a>
    <a href="/staff/maria-lopez">Full profile</a>
  </div>
  <div class="staff-member">
    <h2 class="name">Sam Carter</h2>
    <span class="position">Sports Editor</span>
    <a href="mailto:sam.carter@outlet.com">sam.carter@outlet.com</a>
  </div>
</section>
</body></html>
"""

FREE_TEXT = """
<html><body>
<article>
  <p>Newsroom contacts</p>
  <p>Priya Natarajan</p>
  <p>Health Reporter</p>
  <p>priya@outlet.com</p>
  <p>Tom Baker</p>
  <p>Business Editor</p>
  <p>tom.baker@outlet.com</p>
</article>
</body></html>
"""


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Jane Doe", True),
        ("Mary Anne Smith", True),
        ("jane.doe@example.com", False),
        ("Reporter", False),
        ("mailto link here", False),
        ("http://example.com profile", False),
        ("", False),
        (None, False),
    ],
)
def test_is_valid_name(text, expected):
    assert is_valid_name(text) is expected


def test_is_valid_title_requires_indicator():
    assert is_valid_title("Senior Technology Reporter") is True
    assert is_valid_title("Gardening enthusiast") is False
    assert is_valid_title("ed") is False


def test_score_candidate_weights():
    assert score_candidate(name="Jane Doe") == 20
    full = score_candidate(
        name="Jane Doe",
        email="jane@outlet.com",
        title="Reporter",
        bio="x" * 60,
        image_url="https://outlet.com/jane.jpg",
        social_links=SocialLinks(twitter="https://twitter.com/janedoe", linkedin="https://linkedin.com/in/jd"),
    )
    assert full == 100
    assert score_candidate(name="Jane Doe", bio="too short") == 20


def test_infer_beat_first_match_wins():
    assert infer_beat("Senior Technology Reporter", None) == "technology"
    assert infer_beat("Markets Editor", "covers the economy") == "business"
    assert infer_beat("Editor", None) is None
    assert infer_beat(None, None) is None


def test_profile_card_scenario():
    candidates = ContactExtractor().extract(JANE_CARD, BASE_URL)

    assert len(candidates) == 1
    jane = candidates[0]
    assert jane.name == "Jane Doe"
    assert jane.title == "Senior Technology Reporter"
    assert jane.email == "jane@outlet.com"
    assert jane.social_links.twitter == "https://twitter.com/janedoe"
    assert jane.confidence_score == 80
    assert jane.beat == "technology"
    assert jane.source_url == BASE_URL


def test_structured_sections_extract_each_member():
    candidates = ContactExtractor().extract(STAFF_LISTING, BASE_URL)

    by_name = {candidate.name: candidate for candidate in candidates}
    assert set(by_name) == {"Maria Lopez", "Sam Carter"}

    maria = by_name["Maria Lopez"]
    assert maria.title == "Politics Correspondent"
    assert maria.image_url == "https://outlet.com/img/maria.jpg"
    assert maria.profile_url == "https://outlet.com/staff/maria-lopez"
    assert maria.social_links.linkedin == "https://www.linkedin.com/in/marialopez"
    assert maria.email is None
    assert maria.beat == "politics"
    assert maria.confidence_score == 20 + 20 + 15 + 5 + 10

    sam = by_name["Sam Carter"]
    assert sam.email == "sam.carter@outlet.com"
    assert sam.confidence_score == 20 + 30 + 20


def test_free_text_strategy_pairs_names_with_emails():
    candidates = ContactExtractor().extract(FREE_TEXT, BASE_URL)

    assert [(c.name, c.email, c.title) for c in candidates] == [
        ("Priya Natarajan", "priya@outlet.com", "Health Reporter"),
        ("Tom Baker", "tom.baker@outlet.com", "Business Editor"),
    ]


def test_extraction_is_idempotent():
    extractor = ContactExtractor()

    first = extractor.extract(STAFF_LISTING, BASE_URL)
    second = extractor.extract(STAFF_LISTING, BASE_URL)

    assert [c.model_dump() for c in first] == [c.model_dump() for c in second]


def test_page_without_people_yields_nothing():
    html = "<html><body><div class='card'><h3>Weather</h3><p>Sunny today.</p></div></body></html>"

    assert ContactExtractor().extract(html, BASE_URL) == []


def test_malformed_html_does_not_raise():
    assert ContactExtractor().extract("<div class='staff'><h2>Unclosed <p", BASE_URL) == []


def test_name_with_bio_only_is_kept():
    html = """
    <html><body>
      <div class="team-member">
        <h3>Priya Shah</h3>
        <p class="bio">Priya Shah has spent a decade following chip supply chains and factory output across Asia.</p>
      </div>
    </body></html>
    """

    candidates = ContactExtractor().extract(html, BASE_URL)

    assert [candidate.name for candidate in candidates] == ["Priya Shah"]
    assert candidates[0].bio.startswith("Priya Shah has spent a decade")
    assert candidates[0].confidence_score == 35
