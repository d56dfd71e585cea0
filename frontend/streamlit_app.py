from __future__ import annotations

import os
from typing import Any, Dict, Optional
from urllib.parse import quote_plus

import requests
import streamlit as st

API_BASE_URL_DEFAULT = os.getenv("PRICESCAN_API_BASE_URL", "http://localhost:3001/api")

PLATFORM_SEARCH_URLS: Dict[str, str] = {
    "蝦皮購物": "https://shopee.tw/search?keyword={term}",
    "PChome 24h": "https://24h.pchome.com.tw/search/?q={term}",
    "momo購物網": "https://www.momoshop.com.tw/search/searchShop.jsp?keyword={term}",
    "露天拍賣": "https://www.ruten.com.tw/find/?q={term}",
    "Yahoo拍賣": "https://tw.bid.yahoo.com/search/auction/product?p={term}",
}


def _get_api_base_url() -> str:
    return st.session_state.get("api_base_url", API_BASE_URL_DEFAULT).rstrip("/")


def _api_get(path: str) -> Any:
    resp = requests.get(f"{_get_api_base_url()}{path}", timeout=10)
    resp.raise_for_status()
    return resp.json()


def _send_analyze(
    image_bytes: bytes,
    filename: str,
    content_type: Optional[str],
    question: Optional[str],
) -> Dict[str, Any]:
    files = {"image": (filename, image_bytes, content_type or "image/jpeg")}
    data = {"question": question} if question else {}
    resp = requests.post(
        f"{_get_api_base_url()}/analyze",
        files=files,
        data=data,
        timeout=180,
    )
    # Failures still carry a {success, error} body worth showing.
    try:
        return resp.json()
    except ValueError:
        resp.raise_for_status()
        raise


def _search_url(platform: str, term: str) -> Optional[str]:
    template = PLATFORM_SEARCH_URLS.get(platform)
    if template is None:
        return None
    return template.format(term=quote_plus(term))


def _render_sidebar() -> None:
    st.sidebar.title("Price Scanner")
    st.sidebar.caption("Photograph anything, get a price")

    st.session_state["api_base_url"] = st.sidebar.text_input(
        "Backend API base URL",
        value=st.session_state.get("api_base_url", API_BASE_URL_DEFAULT),
    )

    try:
        health = _api_get("/health")
        st.sidebar.success(f"{health.get('service', 'API')}: {health.get('status')}")
    except Exception as exc:
        st.sidebar.error(f"Backend unreachable: {exc}")


def _render_result(data: Dict[str, Any]) -> None:
    st.header(data.get("name", ""))
    cols = st.columns(3)
    cols[0].metric("Price", data.get("price", ""))
    cols[1].metric("Popularity", data.get("popularityScore", "-"))
    cols[2].metric("Eco score", data.get("ecoScore", "-"))
    st.caption(data.get("priceNote", ""))

    st.subheader("Description")
    st.write(data.get("description", ""))

    with st.expander("Details", expanded=False):
        for label, key in [
            ("Origin", "origin"),
            ("Material", "material"),
            ("Usage", "usage"),
            ("Category", "category"),
            ("Brand", "brand"),
            ("Size", "size"),
            ("Weight", "weight"),
            ("Warranty", "warranty"),
            ("Availability", "availability"),
            ("Durability", "durability"),
            ("Maintenance", "maintenance"),
        ]:
            st.write(f"**{label}:** {data.get(key, '')}")

    tips = data.get("tips") or []
    if tips:
        st.subheader("Tips")
        for tip in tips:
            st.write(f"- {tip}")

    related = data.get("relatedItems") or []
    if related:
        st.subheader("Related items")
        st.write(" · ".join(f"{item.get('icon', '')} {item.get('name', '')}" for item in related))

    links = data.get("purchaseLinks") or {}
    online = links.get("online") or []
    offline = links.get("offline") or []
    if online or offline:
        st.subheader("Where to buy")
    for link in online:
        platform = link.get("platform", "")
        term = link.get("searchTerm", "")
        url = _search_url(platform, term)
        if url:
            st.markdown(f"- [{platform}]({url}): {term}")
        else:
            st.write(f"- {platform}: {term}")
    for place in offline:
        st.write(f"- {place}")


def main() -> None:
    st.set_page_config(page_title="Price Scanner", page_icon="💰")
    _render_sidebar()

    st.title("Price Scanner")
    uploaded = st.file_uploader("Upload a photo", type=["jpg", "jpeg", "png", "webp", "gif"])
    question = st.text_input("Question (optional)", placeholder="這個東西多少錢？哪裡可以買到？")

    if uploaded is None:
        st.info("Upload an image to get started.")
        return

    st.image(uploaded, use_container_width=True)
    if not st.button("Analyze", use_container_width=True):
        return

    with st.spinner("Analyzing..."):
        try:
            response = _send_analyze(
                image_bytes=uploaded.getvalue(),
                filename=uploaded.name,
                content_type=uploaded.type,
                question=question.strip() or None,
            )
        except Exception as exc:
            st.error(f"Analyze failed: {exc}")
            return

    if not response.get("success"):
        st.error(response.get("error", "Analyze failed"))
        return

    _render_result(response.get("data") or {})


main()
