"""
Unit tests for the outbound collaborators: join-code email and example sentences.

SMTP and the Anthropic client are mocked; nothing leaves the machine.

Run with: python -m pytest tests/test_collaborators.py -v
"""

import asyncio
import smtplib
import sys
from pathlib import Path
from types import SimpleNamespace
from unittest import mock

import anthropic
import httpx
import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.services.errors import InvalidInputError, MailDeliveryError, SentenceGenerationError
from src.services.mail import MailService, render_join_code_email
from src.services.sentences import SentenceGenerator, parse_sentence_reply


class TestMailService:

    def setup_method(self):
        self.mail = MailService(
            sender="spelling@gmail.com",
            password="app-password",
            app_url="https://spelling.example.org/?a=1&b=2",
        )

    def teardown_method(self):
        self.mail.shutdown()

    def test_template_contains_code_and_escaped_link(self):
        body = render_join_code_email("Q7K2M9", "https://spelling.example.org/?a=1&b=2")
        assert body.count("Q7K2M9") == 2
        assert "a=1&amp;b=2" in body
        assert "app-link" not in render_join_code_email("Q7K2M9")

    def test_message_has_text_and_html(self):
        message = self.mail.build_message("parent@gmail.com", "Q7K2M9")
        assert message["To"] == "parent@gmail.com"
        assert "Q7K2M9" in message["Subject"]
        assert message.get_body(preferencelist=("plain",)) is not None
        assert "Q7K2M9" in message.get_body(preferencelist=("html",)).get_content()

    def test_send_uses_smtp_ssl(self):
        with mock.patch("src.services.mail.smtplib.SMTP_SSL") as smtp_cls:
            result = asyncio.run(self.mail.send_join_code("parent@gmail.com", "Q7K2M9", "family-1"))

        smtp = smtp_cls.return_value.__enter__.return_value
        smtp.login.assert_called_once_with("spelling@gmail.com", "app-password")
        smtp.send_message.assert_called_once()
        assert result == {"success": True, "email": "parent@gmail.com", "familyId": "family-1"}

    def test_smtp_error_becomes_delivery_error(self):
        with mock.patch("src.services.mail.smtplib.SMTP_SSL") as smtp_cls:
            smtp = smtp_cls.return_value.__enter__.return_value
            smtp.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
            with pytest.raises(MailDeliveryError):
                asyncio.run(self.mail.send_join_code("parent@gmail.com", "Q7K2M9", "family-1"))

    def test_missing_credentials(self):
        mail = MailService(sender=None, password=None)
        try:
            with pytest.raises(MailDeliveryError):
                asyncio.run(mail.send_join_code("parent@gmail.com", "Q7K2M9", "family-1"))
        finally:
            mail.shutdown()


def text_reply(text):
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=text)])


class TestParseSentenceReply:

    def test_plain_json(self):
        assert parse_sentence_reply('{"cat": "The cat naps."}', ["cat"]) == {"cat": "The cat naps."}

    def test_code_fences_and_chatter(self):
        reply = 'Here you go!\n```json\n{"Cat": "The cat naps.", "dog": "  "}\n```'
        assert parse_sentence_reply(reply, ["cat", "dog"]) == {"cat": "The cat naps."}

    def test_unrequested_words_dropped(self):
        assert parse_sentence_reply('{"cat": "A cat.", "owl": "An owl."}', ["cat"]) == {"cat": "A cat."}

    @pytest.mark.parametrize("reply", ["no json here", "{broken", '["a list"]'])
    def test_garbage(self, reply):
        with pytest.raises(SentenceGenerationError):
            parse_sentence_reply(reply, ["cat"])


class TestSentenceGenerator:

    def setup_method(self):
        self.client = mock.Mock()
        self.client.messages.create = mock.AsyncMock(
            return_value=text_reply('{"because": "I smiled because it was sunny."}')
        )
        self.generator = SentenceGenerator(api_key=None, model="claude-test", client=self.client)

    def test_generate(self):
        sentences = asyncio.run(self.generator.generate([" because ", "friend", "because"]))

        assert sentences == {"because": "I smiled because it was sunny."}
        kwargs = self.client.messages.create.await_args.kwargs
        assert kwargs["model"] == "claude-test"
        prompt = kwargs["messages"][0]["content"]
        assert "- because" in prompt and "- friend" in prompt
        assert prompt.count("- because") == 1

    def test_empty_input_makes_no_call(self):
        assert asyncio.run(self.generator.generate(["", "  "])) == {}
        self.client.messages.create.assert_not_awaited()

    def test_batch_limit(self):
        with pytest.raises(InvalidInputError):
            asyncio.run(self.generator.generate([f"word{i}" for i in range(11)]))
        self.client.messages.create.assert_not_awaited()

    def test_api_error(self):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        self.client.messages.create.side_effect = anthropic.APIConnectionError(request=request)
        with pytest.raises(SentenceGenerationError):
            asyncio.run(self.generator.generate(["cat"]))

    def test_not_configured(self):
        generator = SentenceGenerator(api_key=None)
        assert not generator.available
        with pytest.raises(SentenceGenerationError):
            asyncio.run(generator.generate(["cat"]))

    def test_logs_api_call(self):
        app_logger = mock.Mock()
        generator = SentenceGenerator(api_key=None, model="claude-test", client=self.client, logger=app_logger)
        asyncio.run(generator.generate(["because"]))
        assert app_logger.api_call.call_args.args[:2] == ("anthropic", "claude-test")
