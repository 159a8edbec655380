"""Tests for per-type evidence text."""

from artifacts.models import Artifact
from shared_types import ArtifactType
from suggestions.prompts import analysis_text


def _artifact(type, body=None, **metadata):
    return Artifact(id="a1", user_id="user-1", type=type, content=body, metadata=metadata)


class TestEmail:
    def test_sent_by_contact(self, contact):
        art = _artifact(
            ArtifactType.EMAIL,
            "I just started a new role.",
            subject="News",
            **{"from": {"email": "dana@example.com"}, "to": [{"email": "me@example.com"}]},
        )
        text = analysis_text(art, contact)
        assert "SENT BY the contact (Dana Reyes)" in text
        assert "Subject: News" in text
        assert "I just started a new role." in text

    def test_sent_to_contact(self, contact):
        art = _artifact(
            ArtifactType.EMAIL,
            "Congrats on the promotion!",
            **{"from": {"email": "me@example.com"}, "to": [{"email": "Dana@Example.com"}]},
        )
        assert "SENT TO the contact" in analysis_text(art, contact)

    def test_unclear_direction(self, contact):
        art = _artifact(ArtifactType.EMAIL, "hello")
        assert "Unclear email direction" in analysis_text(art, contact)


class TestLinkedIn:
    def test_post_by_contact(self, contact):
        art = _artifact(
            ArtifactType.LINKEDIN_POST,
            author="Dana Reyes",
            is_author=True,
            content="Thrilled to join Globex!",
            hashtags=["newjob"],
            engagement={"likes": 12},
        )
        text = analysis_text(art, contact)
        assert "AUTHORED BY the contact" in text
        assert "Thrilled to join Globex!" in text
        assert "Hashtags: newjob" in text
        assert "12 likes, 0 comments" in text

    def test_post_by_someone_else(self, contact):
        art = _artifact(ArtifactType.LINKEDIN_POST, author="Sam", content="Shoutout to Dana")
        assert "authored by Sam, not the contact" in analysis_text(art, contact)

    def test_profile(self, contact):
        art = _artifact(
            ArtifactType.LINKEDIN_PROFILE,
            headline="VP Engineering at Globex",
            experience=[{"title": "VP Engineering", "company": "Globex"}],
            education=[{"degree": "BSc", "school": "MIT", "year": 2008}],
            skills=["Leadership", "Go"],
        )
        text = analysis_text(art, contact)
        assert "Headline: VP Engineering at Globex" in text
        assert "- VP Engineering at Globex (Present)" in text
        assert "- BSc from MIT (2008)" in text
        assert "Skills: Leadership, Go" in text


def test_voice_memo_uses_transcription(contact):
    art = _artifact(ArtifactType.VOICE_MEMO)
    art.transcription = "Dana mentioned her daughter started college."
    assert analysis_text(art, contact) == "Dana mentioned her daughter started college."


def test_note_uses_content(contact):
    assert analysis_text(_artifact(ArtifactType.NOTE, "plain note"), contact) == "plain note"
