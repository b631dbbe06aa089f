"""Streamlit editor for connection formatting.

Edit the custom placeholders and external properties of a feed connection,
see which edits are unsaved, save them, and preview an article.
"""

import json
import logging
import os
import uuid
from typing import Any

import httpx
import streamlit as st

from app.services.dirty_state import diff_definitions

# Configuration
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")

STEP_TYPES = ["REGEX", "UPPERCASE", "LOWERCASE", "URL_ENCODE"]

SAMPLE_ARTICLE = {
    "id": "sample-1",
    "title": "Hello World",
    "description": "First line\nSecond line",
    "link": "https://example.com/posts/hello-world",
}

# Page config
st.set_page_config(
    page_title="Connection Formatting",
    page_icon="🧩",
    layout="wide",
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# =============================================================================
# API Client
# =============================================================================


class APIClient:
    """Thin synchronous client for the formatting API."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")

    def _connection_url(self, feed_id: str, connection_id: str, path: str) -> str:
        return f"{self.base_url}/feeds/{feed_id}/connections/{connection_id}/{path}"

    @staticmethod
    def _body(response: httpx.Response) -> dict[str, Any]:
        """Decode a JSON body, tolerating non-JSON error pages from proxies."""
        try:
            return response.json()
        except ValueError:
            logger.error(f"Non-JSON response ({response.status_code}) from {response.url}")
            return {"detail": f"HTTP {response.status_code}: {response.text[:200]}"}

    def get_definitions(self, feed_id: str, connection_id: str) -> dict[str, Any]:
        url = self._connection_url(feed_id, connection_id, "definitions")
        try:
            response = httpx.get(url, timeout=10.0)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Loading definitions failed: {e}")
            st.error(f"Could not load definitions: {e}")
            return {"customPlaceholders": [], "externalProperties": []}

    def save(self, feed_id: str, connection_id: str, path: str, payload: dict[str, Any]) -> tuple[bool, dict[str, Any]]:
        """PUT a definition list.

        Returns:
            Whether the save succeeded and the response body.
        """
        url = self._connection_url(feed_id, connection_id, path)
        try:
            response = httpx.put(url, json=payload, timeout=10.0)
        except httpx.HTTPError as e:
            logger.error(f"Save failed: {e}")
            return False, {"detail": str(e)}
        return response.status_code == 200, self._body(response)

    def preview(self, feed_id: str, connection_id: str, payload: dict[str, Any]) -> tuple[int, dict[str, Any]]:
        url = self._connection_url(feed_id, connection_id, "preview")
        try:
            response = httpx.post(url, json=payload, timeout=30.0)
        except httpx.HTTPError as e:
            logger.error(f"Preview failed: {e}")
            return 0, {"detail": str(e)}
        return response.status_code, self._body(response)

    def health_check(self) -> bool:
        try:
            response = httpx.get(f"{self.base_url}/health", timeout=5.0)
            return response.status_code == 200
        except httpx.HTTPError:
            return False


# =============================================================================
# Editor State
# =============================================================================


def load_connection(client: APIClient, feed_id: str, connection_id: str) -> None:
    saved = client.get_definitions(feed_id, connection_id)
    st.session_state.baseline = saved
    st.session_state.pending = json.loads(json.dumps(saved))
    st.session_state.loaded_for = (feed_id, connection_id)


def new_placeholder() -> dict[str, Any]:
    return {
        "id": str(uuid.uuid4()),
        "referenceName": "",
        "sourcePlaceholder": "",
        "steps": [new_step()],
    }


def new_step(step_type: str = "REGEX") -> dict[str, Any]:
    step: dict[str, Any] = {"id": str(uuid.uuid4()), "type": step_type}
    if step_type == "REGEX":
        step.update(regexSearch="", regexSearchFlags="gi", replacementString="")
    return step


def new_property() -> dict[str, Any]:
    return {"id": str(uuid.uuid4()), "sourceField": "", "cssSelector": "", "label": ""}


def move(items: list[Any], index: int, offset: int) -> None:
    target = index + offset
    if 0 <= target < len(items):
        items.insert(target, items.pop(index))


def show_issues(body: dict[str, Any]) -> None:
    issues = (body.get("extra") or {}).get("issues") or []
    st.error(body.get("detail", "Save failed"))
    for issue in issues:
        st.write(f"- `{issue.get('field')}`: {issue.get('message')}")


# =============================================================================
# UI Components
# =============================================================================


def render_sidebar(client: APIClient) -> tuple[str, str, dict[str, Any]]:
    with st.sidebar:
        st.title("🧩 Formatting")

        if client.health_check():
            st.success("✅ API Connected")
        else:
            st.error("❌ API Disconnected")
            st.info(f"API URL: {API_BASE_URL}")

        st.divider()

        feed_id = st.text_input("Feed ID", value="feed-1")
        connection_id = st.text_input("Connection ID", value="discord-1")

        st.subheader("Sample article")
        raw_article = st.text_area(
            "Article JSON",
            value=json.dumps(SAMPLE_ARTICLE, indent=2),
            height=220,
            label_visibility="collapsed",
        )
        try:
            article = json.loads(raw_article)
        except json.JSONDecodeError as e:
            st.error(f"Invalid JSON: {e}")
            article = {}

    return feed_id, connection_id, article


def render_step(step: dict[str, Any], steps: list[dict[str, Any]], index: int) -> None:
    cols = st.columns([2, 4, 1, 3, 1, 1, 1])
    step_type = cols[0].selectbox(
        "Type",
        STEP_TYPES,
        index=STEP_TYPES.index(step.get("type", "REGEX")),
        key=f"type-{step['id']}",
    )
    if step_type != step.get("type", "REGEX"):
        steps[index] = {**new_step(step_type), "id": step["id"]}
        st.rerun()

    if step_type == "REGEX":
        step["regexSearch"] = cols[1].text_input(
            "Search", value=step.get("regexSearch", ""), key=f"search-{step['id']}"
        )
        step["regexSearchFlags"] = cols[2].text_input(
            "Flags", value=step.get("regexSearchFlags", "gi"), key=f"flags-{step['id']}"
        )
        step["replacementString"] = cols[3].text_input(
            "Replace with", value=step.get("replacementString", ""), key=f"replace-{step['id']}"
        )

    if cols[4].button("↑", key=f"up-{step['id']}"):
        move(steps, index, -1)
        st.rerun()
    if cols[5].button("↓", key=f"down-{step['id']}"):
        move(steps, index, 1)
        st.rerun()
    if cols[6].button("✕", key=f"del-{step['id']}"):
        steps.pop(index)
        st.rerun()


def render_custom_placeholders(client: APIClient, feed_id: str, connection_id: str, article: dict[str, Any]) -> None:
    pending = st.session_state.pending
    placeholders: list[dict[str, Any]] = pending.setdefault("customPlaceholders", [])
    diff = diff_definitions(st.session_state.baseline, pending).custom_placeholders

    source_options = [""] + sorted(article) + [
        f"external::{p['label']}" for p in pending.get("externalProperties", []) if p.get("label")
    ]

    for index, placeholder in enumerate(placeholders):
        title = placeholder.get("referenceName") or "(unnamed)"
        if placeholder["id"] in diff.dirty_ids:
            title += " • unsaved"
        with st.expander(f"{{{{custom::{title}}}}}", expanded=placeholder["id"] in diff.added):
            placeholder["referenceName"] = st.text_input(
                "Reference name", value=placeholder.get("referenceName", ""), key=f"name-{placeholder['id']}"
            )
            current = placeholder.get("sourcePlaceholder", "")
            options = source_options if current in source_options else source_options + [current]
            placeholder["sourcePlaceholder"] = st.selectbox(
                "Source placeholder", options, index=options.index(current), key=f"src-{placeholder['id']}"
            )

            steps = placeholder.setdefault("steps", [])
            for step_index, step in enumerate(steps):
                render_step(step, steps, step_index)

            col1, col2, col3, col4 = st.columns(4)
            if col1.button("Add step", key=f"add-step-{placeholder['id']}"):
                steps.append(new_step())
                st.rerun()
            if col2.button("Move up", key=f"ph-up-{placeholder['id']}"):
                move(placeholders, index, -1)
                st.rerun()
            if col3.button("Move down", key=f"ph-down-{placeholder['id']}"):
                move(placeholders, index, 1)
                st.rerun()
            if col4.button("Delete placeholder", key=f"ph-del-{placeholder['id']}"):
                placeholders.pop(index)
                st.rerun()

    col1, col2 = st.columns([1, 1])
    if col1.button("Add custom placeholder"):
        placeholders.append(new_placeholder())
        st.rerun()
    if col2.button("Save custom placeholders", type="primary", disabled=not diff.has_changes):
        ok, body = client.save(feed_id, connection_id, "custom-placeholders", {"customPlaceholders": placeholders})
        if ok:
            st.session_state.baseline = body
            st.session_state.pending = json.loads(json.dumps(body))
            st.success("Custom placeholders saved")
            st.rerun()
        else:
            show_issues(body)


def render_external_properties(client: APIClient, feed_id: str, connection_id: str, article: dict[str, Any]) -> None:
    pending = st.session_state.pending
    properties: list[dict[str, Any]] = pending.setdefault("externalProperties", [])
    diff = diff_definitions(st.session_state.baseline, pending).external_properties

    for index, prop in enumerate(properties):
        marker = " • unsaved" if prop["id"] in diff.dirty_ids else ""
        st.markdown(f"**{prop.get('label') or '(unlabelled)'}**{marker}")
        cols = st.columns([2, 4, 2, 1])
        fields = [""] + sorted(article)
        current = prop.get("sourceField", "")
        options = fields if current in fields else fields + [current]
        prop["sourceField"] = cols[0].selectbox(
            "Link field", options, index=options.index(current), key=f"field-{prop['id']}"
        )
        prop["cssSelector"] = cols[1].text_input(
            "CSS selector", value=prop.get("cssSelector", ""), key=f"css-{prop['id']}",
            help="Append ::attr(name) to read an attribute, e.g. img.hero::attr(src)",
        )
        prop["label"] = cols[2].text_input("Label", value=prop.get("label", ""), key=f"label-{prop['id']}")
        if cols[3].button("✕", key=f"prop-del-{prop['id']}"):
            properties.pop(index)
            st.rerun()

    col1, col2 = st.columns([1, 1])
    if col1.button("Add external property"):
        properties.append(new_property())
        st.rerun()
    if col2.button("Save external properties", type="primary", disabled=not diff.has_changes):
        ok, body = client.save(feed_id, connection_id, "external-properties", {"externalProperties": properties})
        if ok:
            st.session_state.baseline = body
            st.session_state.pending = json.loads(json.dumps(body))
            st.success("External properties saved")
            st.rerun()
        else:
            show_issues(body)


def render_preview(client: APIClient, feed_id: str, connection_id: str, article: dict[str, Any]) -> None:
    content = st.text_area(
        "Message content",
        value="**{{title}}**\n{{custom::summary||description}}\n{{link}}",
        height=120,
    )

    if not st.button("Preview", type="primary"):
        return

    st.session_state.preview_request_id = st.session_state.get("preview_request_id", 0) + 1
    payload = {
        "article": {k: None if v is None else str(v) for k, v in article.items()},
        "customPlaceholders": st.session_state.pending.get("customPlaceholders", []),
        "externalProperties": st.session_state.pending.get("externalProperties", []),
        "content": content,
        "requestId": st.session_state.preview_request_id,
        "sessionId": st.session_state.session_id,
    }

    with st.spinner("Rendering preview..."):
        status_code, body = client.preview(feed_id, connection_id, payload)

    if status_code == 409:
        # A newer preview already replaced this one
        return
    if status_code != 200:
        st.error(body.get("detail", "Preview failed"))
        return

    st.subheader("Rendered message")
    st.markdown(body.get("renderedContent") or "")

    generated = {
        key: value
        for key, value in body.get("article", {}).items()
        if key.startswith(("custom::", "external::"))
    }
    st.subheader("Generated properties")
    if generated:
        st.dataframe(
            [{"Placeholder": f"{{{{{key}}}}}", "Value": value} for key, value in generated.items()],
            use_container_width=True,
            hide_index=True,
        )
    else:
        st.info("No additional properties were generated")

    for failure in body.get("failures", []):
        st.warning(f"{failure['kind']}: {failure['message']}")


# =============================================================================
# Main App
# =============================================================================


def main() -> None:
    client = APIClient(API_BASE_URL)

    if "session_id" not in st.session_state:
        st.session_state.session_id = str(uuid.uuid4())

    feed_id, connection_id, article = render_sidebar(client)

    if st.session_state.get("loaded_for") != (feed_id, connection_id):
        load_connection(client, feed_id, connection_id)

    st.title("Connection Formatting")
    if diff_definitions(st.session_state.baseline, st.session_state.pending).has_changes:
        st.caption("⚠️ You have unsaved changes")

    tab1, tab2, tab3 = st.tabs(["Custom placeholders", "External properties", "Preview"])

    with tab1:
        render_custom_placeholders(client, feed_id, connection_id, article)

    with tab2:
        render_external_properties(client, feed_id, connection_id, article)

    with tab3:
        render_preview(client, feed_id, connection_id, article)


if __name__ == "__main__":
    main()
