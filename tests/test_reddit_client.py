"""Tests for the Reddit Answers browser collector."""

from unittest.mock import Mock

import pytest
from selenium.common.exceptions import WebDriverException

from pinpoint_sentiment.core.config import SentimentConfig
from pinpoint_sentiment.core.errors import CollectionError
from pinpoint_sentiment.core.models import Source
from pinpoint_sentiment.services.reddit_client import (
    RedditAnswersService, looks_like_answer, collapse_whitespace,
)

ANSWER = (
    "Redditors are broadly positive about   Cursor.\n\n Overall sentiment: 7/10. "
    "People praise the autocomplete and agent mode, while negatives focus on pricing changes."
)


def element(text="", displayed=True):
    el = Mock()
    el.text = text
    el.is_displayed.return_value = displayed
    return el


def make_driver(answer_text=None, body_text="", with_input=True, with_submit=True):
    """Fake WebDriver with one question box, one submit button and an optional answer element."""
    question_box = element()
    submit = element()
    answer = element(answer_text) if answer_text else None

    def find_elements(by, selector):
        if with_input and selector == 'textarea[placeholder*="question" i]':
            return [question_box]
        if with_submit and selector == 'button[type="submit"]':
            return [submit]
        if answer is not None and selector == '[data-testid*="answer"]':
            return [answer]
        return []

    driver = Mock()
    driver.find_elements.side_effect = find_elements
    driver.find_element.return_value = element(body_text)
    driver.question_box = question_box
    driver.submit = submit
    return driver


def make_service(driver):
    return RedditAnswersService(driver_factory=lambda: driver, answer_timeout=0, poll_interval=0)


class TestRedditAnswersService:

    def test_collects_answer(self, subject):
        driver = make_driver(answer_text=ANSWER)
        data = make_service(driver).collect(subject)

        assert data.source is Source.REDDIT
        assert len(data.text_blocks) == 1
        assert data.text_blocks[0].startswith("REDDIT ANSWERS RESPONSE:\n\nQuestion: What do people on reddit")
        assert "Redditors are broadly positive about Cursor. Overall sentiment: 7/10." in data.text_blocks[0]
        assert data.metadata["window_start"]
        sent = driver.question_box.send_keys.call_args.args[0]
        assert '"Cursor"' in sent
        driver.submit.click.assert_called_once()
        driver.quit.assert_called_once()

    def test_page_chrome_is_not_an_answer(self, subject):
        nav = "Home Popular Explore Communities Log In Get the app Reddit Answers Beta " * 5
        assert len(nav) > 300
        driver = make_driver(body_text=nav)
        with pytest.raises(CollectionError) as exc:
            make_service(driver).collect(subject)
        assert "did not return a response within timeout period" in str(exc.value)
        driver.quit.assert_called_once()

    def test_question_carries_post_cap(self, subject):
        driver = make_driver(answer_text=ANSWER)
        config = SentimentConfig(reddit_max_posts=25, lookback_months=6)
        data = make_service(driver).collect(subject, config)
        sent = driver.question_box.send_keys.call_args.args[0]
        assert "up to 25 posts" in sent
        assert "last 6 months" in sent
        assert data.metadata["question_asked"] == sent

    def test_quit_failure_keeps_answer(self, subject):
        driver = make_driver(answer_text=ANSWER)
        driver.quit.side_effect = WebDriverException("session deleted")
        data = make_service(driver).collect(subject)
        assert "Overall sentiment: 7/10." in data.text_blocks[0]
        driver.quit.assert_called_once()

    def test_times_out_without_answer(self, subject):
        driver = make_driver(body_text="Loading...")
        with pytest.raises(CollectionError) as exc:
            make_service(driver).collect(subject)
        assert "timeout" in str(exc.value)
        driver.quit.assert_called_once()

    def test_missing_question_input(self, subject):
        driver = make_driver(answer_text=ANSWER, with_input=False)
        with pytest.raises(CollectionError):
            make_service(driver).collect(subject)
        driver.quit.assert_called_once()

    def test_missing_submit_button(self, subject):
        driver = make_driver(answer_text=ANSWER, with_submit=False)
        with pytest.raises(CollectionError):
            make_service(driver).collect(subject)
        driver.quit.assert_called_once()

    def test_browser_errors_become_collection_errors(self, subject):
        driver = make_driver(answer_text=ANSWER)
        driver.get.side_effect = WebDriverException("net::ERR_NAME_NOT_RESOLVED")
        with pytest.raises(CollectionError):
            make_service(driver).collect(subject)
        driver.quit.assert_called_once()

    def test_browser_start_failure(self, subject):
        def broken_factory():
            raise WebDriverException("chrome not found")

        service = RedditAnswersService(driver_factory=broken_factory, answer_timeout=0)
        with pytest.raises(CollectionError):
            service.collect(subject)


def test_answer_heuristic():
    assert looks_like_answer(ANSWER, "Cursor")
    assert not looks_like_answer("Cursor is fine.", "Cursor")
    assert looks_like_answer("x" * 101 + " score 8", "Other")
    assert not looks_like_answer("x" * 150, "Other")


def test_collapse_whitespace():
    assert collapse_whitespace("  a\n\n b\tc  ") == "a b c"


def test_driver_download_failure():
    def offline_factory():
        raise ValueError("Could not reach host. Are you offline?")

    service = RedditAnswersService(driver_factory=offline_factory, answer_timeout=0)
    with pytest.raises(CollectionError) as exc:
        service.ask("question", "Cursor")
    assert "Failed to start browser session" in str(exc.value)
