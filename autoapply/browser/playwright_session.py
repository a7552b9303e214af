"""Playwright-backed browser session for headless/cloud automation."""

import logging
from typing import Any

from playwright.async_api import Browser, BrowserContext, Page, async_playwright

from autoapply.browser.base import BrowserSession
from autoapply.browser.models import BrowserConfig, DOMControl, ElementInfo, FilePayload, QuestionCard

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
]

ELEMENT_INFO_JS = """
(el) => {
    const attributes = {};
    for (const attr of el.attributes) {
        attributes[attr.name] = attr.value;
    }
    const style = window.getComputedStyle(el);
    const visible = style.display !== 'none' &&
                    style.visibility !== 'hidden' &&
                    (el.offsetParent !== null || style.position === 'fixed');
    return {
        tag: el.tagName.toLowerCase(),
        text: (el.innerText || el.textContent || '').trim(),
        attributes: attributes,
        value: ('value' in el && el.value != null) ? String(el.value) : null,
        visible: visible,
    };
}
"""

# Shared by control and question-card discovery
DESCRIBE_CONTROL_JS = """
const describeControl = (el) => {
    const tag = el.tagName.toLowerCase();
    const type = tag === 'input'
        ? (el.getAttribute('type') || 'text').toLowerCase()
        : tag;
    if (['hidden', 'submit', 'button', 'reset', 'image'].includes(type)) return null;

    const style = window.getComputedStyle(el);
    const isVisible = style.display !== 'none' &&
                      style.visibility !== 'hidden' &&
                      el.offsetParent !== null;

    let label = null;
    const labelEl = el.labels?.[0] ||
        (el.id ? document.querySelector(`label[for="${CSS.escape(el.id)}"]`) : null);
    if (labelEl) {
        label = labelEl.textContent.trim();
    }
    if (!label && el.getAttribute('aria-label')) {
        label = el.getAttribute('aria-label').trim();
    }

    let groupLabel = null;
    const fieldset = el.closest('fieldset');
    const legend = fieldset ? fieldset.querySelector('legend') : null;
    if (legend) groupLabel = legend.textContent.trim();

    let options = [];
    if (tag === 'select') {
        options = Array.from(el.options).map(o => o.text.trim());
    }

    let selector = '';
    if (el.id) {
        selector = `#${CSS.escape(el.id)}`;
    } else if (el.name && (type === 'radio' || type === 'checkbox') && el.value) {
        selector = `${tag}[name="${el.name}"][value="${el.value}"]`;
    } else if (el.name) {
        selector = `${tag}[name="${el.name}"]`;
    } else if (type === 'file') {
        // Dropzone widgets often render bare file inputs
        const index = Array.from(document.querySelectorAll('input[type="file"]')).indexOf(el);
        selector = `input[type="file"] >> nth=${index}`;
    } else {
        return null;
    }

    return {
        selector: selector,
        tag: tag,
        input_type: type,
        element_id: el.id || null,
        name: el.name || null,
        label: label,
        placeholder: el.placeholder || null,
        required: el.required || el.getAttribute('aria-required') === 'true',
        options: options,
        value: (type === 'file') ? null : (el.value || null),
        checked: !!el.checked,
        accept: el.getAttribute('accept'),
        max_length: (el.maxLength && el.maxLength > 0) ? el.maxLength : null,
        group_label: groupLabel,
        in_form: el.closest('form') !== null,
        visible: isVisible,
    };
};
"""

CONTROLS_JS = (
    "() => {"
    + DESCRIBE_CONTROL_JS
    + """
    const controls = [];
    document.querySelectorAll('input, textarea, select').forEach((el) => {
        const described = describeControl(el);
        if (described) controls.push(described);
    });
    return controls;
}
"""
)

QUESTION_CARDS_JS = (
    "(args) => {"
    + DESCRIBE_CONTROL_JS
    + """
    const cards = [];
    document.querySelectorAll(args.cardSelector).forEach((card) => {
        const labelEl = card.querySelector(args.labelSelector);
        const label = labelEl ? labelEl.textContent.trim() : '';
        const controls = [];
        card.querySelectorAll('input, textarea, select').forEach((el) => {
            const described = describeControl(el);
            if (described) controls.push(described);
        });
        if (label && controls.length) cards.push({ label: label, controls: controls });
    });
    return cards;
}
"""
)


class PlaywrightSession(BrowserSession):
    """Browser session using Playwright's Chromium.

    Supports headless and headed modes, suitable for both local
    development and cloud deployment.
    """

    def __init__(self, config: BrowserConfig | None = None) -> None:
        super().__init__(config)
        self._playwright: Any = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    @property
    def adapter_name(self) -> str:
        """Return adapter name."""
        return "playwright"

    @property
    def page(self) -> Page:
        """Get the current page, raising if not initialized."""
        if self._page is None:
            raise RuntimeError("Browser not initialized. Call initialize() first.")
        return self._page

    async def _launch(self) -> None:
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self.config.headless,
                slow_mo=self.config.slow_mo,
                args=LAUNCH_ARGS,
            )

            self._context = await self._browser.new_context(
                viewport={"width": self.config.viewport_width, "height": self.config.viewport_height},
                user_agent=self.config.user_agent,
                locale=self.config.locale,
                timezone_id=self.config.timezone_id,
                extra_http_headers={"Accept-Language": f"{self.config.locale},en;q=0.9"},
            )
            self._context.set_default_timeout(self.config.timeout)

            self._page = await self._context.new_page()
        except Exception:
            await self._shutdown()
            raise

        logger.info("Playwright browser initialized successfully")

    async def _shutdown(self) -> None:
        if self._page:
            await self._page.close()
            self._page = None

        if self._context:
            await self._context.close()
            self._context = None

        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    async def _goto(self, url: str) -> None:
        response = await self.page.goto(
            url,
            wait_until=self.config.wait_until,  # type: ignore
            timeout=self.config.timeout,
        )
        if response is not None and not response.ok:
            logger.warning(f"Navigation to {url} returned HTTP {response.status}")

    async def _sleep(self, ms: int) -> None:
        await self.page.wait_for_timeout(ms)

    async def _capture_png(self) -> bytes:
        return await self.page.screenshot(full_page=False)

    async def _wait_for(self, selector: str, timeout: int) -> None:
        await self.page.wait_for_selector(selector, state="visible", timeout=timeout)

    async def _click(self, selector: str) -> None:
        await self.page.locator(selector).first.click(timeout=self.config.timeout)

    async def _fill(self, selector: str, value: str) -> None:
        await self.page.locator(selector).first.fill(value, timeout=self.config.timeout)

    async def _set_input_files(self, selector: str, payload: FilePayload) -> None:
        await self.page.locator(selector).first.set_input_files(
            {"name": payload.name, "mimeType": payload.mime_type, "buffer": payload.content},
            timeout=self.config.timeout,
        )

    async def _select_option(self, selector: str, label: str) -> None:
        await self.page.locator(selector).first.select_option(label=label, timeout=self.config.timeout)

    async def _content(self) -> str:
        return await self.page.content()

    async def _url(self) -> str:
        return self.page.url

    async def _query_all(self, selector: str) -> list[ElementInfo]:
        # Locators accept the same selectors as the commands, including nth=
        locator = self.page.locator(selector)
        elements = []
        for index in range(await locator.count()):
            data = await locator.nth(index).evaluate(ELEMENT_INFO_JS)
            elements.append(ElementInfo(**data))
        return elements

    async def _body_text(self) -> str:
        return await self.page.inner_text("body")

    async def _controls(self) -> list[DOMControl]:
        result = await self.page.evaluate(CONTROLS_JS)
        return [DOMControl(**c) for c in result]

    async def _question_cards(self, card_selector: str, label_selector: str) -> list[QuestionCard]:
        result = await self.page.evaluate(
            QUESTION_CARDS_JS, {"cardSelector": card_selector, "labelSelector": label_selector}
        )
        return [
            QuestionCard(label=card["label"], controls=[DOMControl(**c) for c in card["controls"]])
            for card in result
        ]
