"""Reddit Answers collection through browser automation."""

import logging
import re
import time
from typing import Callable, Optional

import requests
from selenium import webdriver
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.common.by import By
from webdriver_manager.chrome import ChromeDriverManager

from ..core.config import settings, SentimentConfig, DEFAULT_SENTIMENT_CONFIG
from ..core.constants import CollectorConstants
from ..core.errors import CollectionError
from ..core.models import Source, Subject, RawSourceData
from ..utils.dates import collection_window

logger = logging.getLogger(__name__)

REDDIT_QUESTION = (
    'What do people on reddit think about "{name}"? Give me an overall sentiment score from 0 to 10. '
    "Also summarize the top 10 positives, the top 10 negatives, and the major features of the tool. "
    "Base it on up to {max_posts} posts and comments from the last {months} months."
)

# Ordered from most to least specific
QUESTION_SELECTORS = [
    (By.CSS_SELECTOR, 'textarea[placeholder*="question" i]'),
    (By.CSS_SELECTOR, 'textarea[placeholder*="ask" i]'),
    (By.CSS_SELECTOR, 'textarea[placeholder*="What" i]'),
    (By.CSS_SELECTOR, 'input[placeholder*="question" i]'),
    (By.CSS_SELECTOR, 'input[placeholder*="ask" i]'),
    (By.CSS_SELECTOR, '[data-testid*="question"]'),
    (By.CSS_SELECTOR, '[data-testid*="textarea"]'),
    (By.CSS_SELECTOR, '[data-testid*="input"]'),
    (By.CSS_SELECTOR, '[aria-label*="question" i]'),
    (By.CSS_SELECTOR, '[aria-label*="ask" i]'),
    (By.CSS_SELECTOR, 'textarea'),
    (By.CSS_SELECTOR, 'input[type="text"]'),
]

SUBMIT_SELECTORS = [
    (By.CSS_SELECTOR, 'button[type="submit"]'),
    (By.XPATH, '//button[contains(normalize-space(.), "Submit")]'),
    (By.XPATH, '//button[contains(normalize-space(.), "Ask")]'),
    (By.XPATH, '//button[contains(normalize-space(.), "Post")]'),
    (By.CSS_SELECTOR, '[data-testid*="submit"]'),
    (By.CSS_SELECTOR, '[aria-label*="submit" i]'),
]

ANSWER_SELECTORS = [
    (By.CSS_SELECTOR, '[data-testid*="answer"]'),
    (By.CSS_SELECTOR, '[class*="answer" i]'),
    (By.CSS_SELECTOR, '[id*="answer" i]'),
    (By.CSS_SELECTOR, 'article'),
    (By.CSS_SELECTOR, '[role="article"]'),
    (By.CSS_SELECTOR, 'main'),
]

_OUT_OF_TEN_RE = re.compile(r"\d+\s*/\s*10")
_SCORE_RE = re.compile(r"score.*\d+", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")


def looks_like_answer(text: str, subject_name: str) -> bool:
    """Heuristic: long enough and about the subject, sentiment or a score."""
    if len(text) <= CollectorConstants.MIN_ANSWER_ELEMENT_CHARS:
        return False
    return (
        subject_name.lower() in text.lower()
        or "sentiment" in text
        or "positive" in text
        or "negative" in text
        or bool(_OUT_OF_TEN_RE.search(text))
        or bool(_SCORE_RE.search(text))
    )


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text or "").strip()


def format_answer_block(question: str, answer: str) -> str:
    return f"REDDIT ANSWERS RESPONSE:\n\nQuestion: {question}\n\nAnswer:\n{answer}"


def create_chrome_driver():
    """Start a Chrome session, remote when a Selenium hub is configured."""
    options = Options()
    options.add_argument("--no-sandbox")
    options.add_argument("--disable-setuid-sandbox")
    options.add_argument("--disable-dev-shm-usage")
    options.add_argument("--disable-accelerated-2d-canvas")
    options.add_argument("--disable-gpu")
    options.add_argument("--window-size=1280,720")
    if settings.browser_headless:
        options.add_argument("--headless=new")

    if settings.selenium_hub_url:
        logger.info(f"Connecting to Selenium Hub at: {settings.selenium_hub_url}")
        return webdriver.Remote(command_executor=settings.selenium_hub_url, options=options)
    return webdriver.Chrome(service=Service(ChromeDriverManager().install()), options=options)


class RedditAnswersService:
    """Ask Reddit Answers about a subject and capture the answer text verbatim."""

    def __init__(self, driver_factory: Optional[Callable] = None,
                 answer_timeout: Optional[float] = None,
                 poll_interval: float = CollectorConstants.ANSWER_POLL_INTERVAL):
        self.driver_factory = driver_factory or create_chrome_driver
        self.answer_timeout = answer_timeout if answer_timeout is not None else settings.reddit_answer_timeout
        self.poll_interval = poll_interval

    @staticmethod
    def _first_visible(driver, selectors):
        for by, selector in selectors:
            try:
                elements = driver.find_elements(by, selector)
            except WebDriverException:
                continue
            for element in elements:
                try:
                    if element.is_displayed():
                        logger.debug(f"[Reddit Answers] Matched selector: {selector}")
                        return element
                except WebDriverException:
                    continue
        return None

    def _find_answer(self, driver, subject_name: str):
        for by, selector in ANSWER_SELECTORS:
            try:
                elements = driver.find_elements(by, selector)
            except WebDriverException:
                continue
            for element in elements:
                try:
                    text = element.text or ""
                except WebDriverException:
                    continue
                if looks_like_answer(text, subject_name):
                    logger.info(f"[Reddit Answers] Found answer element with selector: {selector}")
                    return text
        return None

    def wait_for_answer(self, driver, subject_name: str) -> str:
        """Poll for a qualifying answer; raise CollectionError once the timeout passes."""
        deadline = time.monotonic() + self.answer_timeout
        while True:
            answer = self._find_answer(driver, subject_name)
            if answer:
                return answer
            if time.monotonic() >= deadline:
                raise CollectionError("Reddit Answers did not return a response within timeout period")
            time.sleep(self.poll_interval)

    def ask(self, question: str, subject_name: str) -> str:
        """Submit the question in a fresh browser session and return the collapsed answer."""
        try:
            driver = self.driver_factory()
        except WebDriverException as e:
            raise CollectionError(f"Failed to start browser session: {e.msg or e}") from e
        except (requests.RequestException, ValueError, OSError) as e:
            # webdriver-manager downloads the driver binary on first use
            raise CollectionError(f"Failed to start browser session: {e}") from e

        try:
            driver.set_page_load_timeout(settings.reddit_page_load_timeout)
            logger.info("[Reddit Answers] Navigating to Reddit Answers...")
            driver.get(CollectorConstants.REDDIT_ANSWERS_URL)

            question_input = self._first_visible(driver, QUESTION_SELECTORS)
            if question_input is None:
                raise CollectionError(
                    "Could not find question input box on Reddit Answers page. Page may have changed structure."
                )
            question_input.click()
            question_input.clear()
            question_input.send_keys(question)

            submit_button = self._first_visible(driver, SUBMIT_SELECTORS)
            if submit_button is None:
                raise CollectionError("Could not find submit button on Reddit Answers page")
            submit_button.click()

            logger.info("[Reddit Answers] Waiting for response...")
            answer = collapse_whitespace(self.wait_for_answer(driver, subject_name))
        except WebDriverException as e:
            raise CollectionError(f"Reddit Answers browser automation failed: {e.msg or e}") from e
        finally:
            try:
                driver.quit()
            except WebDriverException as e:
                logger.warning(f"[Reddit Answers] Failed to close browser session: {e.msg or e}")

        if len(answer) < CollectorConstants.MIN_ANSWER_CHARS:
            raise CollectionError("Reddit Answers returned an empty or too short response")
        logger.info(f"[Reddit Answers] Successfully extracted answer ({len(answer)} chars)")
        return answer

    def collect(self, subject: Subject, config: SentimentConfig = DEFAULT_SENTIMENT_CONFIG) -> RawSourceData:
        window_start, window_end = collection_window(config.lookback_months)
        question = REDDIT_QUESTION.format(
            name=subject.name, max_posts=config.reddit_max_posts, months=config.lookback_months
        )
        answer = self.ask(question, subject.name)
        return RawSourceData(
            source=Source.REDDIT,
            subject_id=subject.id,
            text_blocks=[format_answer_block(question, answer)],
            metadata={
                "total_items": 1,
                "window_start": window_start,
                "window_end": window_end,
                "collection_method": "reddit_answers",
                "question_asked": question,
            },
        )
