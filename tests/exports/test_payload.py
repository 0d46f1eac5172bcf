"""Payload extraction from computed export results."""

import base64

import pytest

from designhub.exports.payload import (
    InlineBase64,
    InlineBinary,
    InlineDataUri,
    RemoteHref,
    decode_inline,
    extract_payload,
    payload_shapes,
    pick_content,
)

PDF = b"%PDF-1.7 fake"


def _no_fetch():
    async def fetch(url: str) -> bytes:
        raise AssertionError(f"unexpected fetch of {url}")

    return fetch


def _recording_fetch(body: bytes):
    seen: list[str] = []

    async def fetch(url: str) -> bytes:
        seen.append(url)
        return body

    return fetch, seen


class TestPickContent:
    def test_no_array(self) -> None:
        assert pick_content({"href": "x"}, None) is None

    def test_preferred_type_wins(self) -> None:
        result = {"content": [{"contentType": "model/obj"}, {"contentType": "application/pdf"}]}
        assert pick_content(result, "Application/PDF")["contentType"] == "application/pdf"

    def test_falls_back_to_first_entry(self) -> None:
        result = {"content": [{"contentType": "model/obj"}, {"contentType": "application/pdf"}]}
        assert pick_content(result, "application/zip")["contentType"] == "model/obj"


class TestPayloadShapes:
    def test_inline_before_url(self) -> None:
        shapes = list(payload_shapes({"href": "http://x/1", "data": "QUJD"}))
        assert shapes == [InlineBase64("QUJD"), RemoteHref("http://x/1")]

    def test_data_uri(self) -> None:
        [shape] = payload_shapes({"data": "data:application/pdf;base64,QUJD"})
        assert isinstance(shape, InlineDataUri)

    def test_byte_list_is_binary(self) -> None:
        [shape] = payload_shapes({"content": [65, 66]})
        assert shape == InlineBinary(b"AB")

    def test_url_field_priority(self) -> None:
        [shape] = payload_shapes({"link": "http://x/l", "downloadUrl": "http://x/d"})
        assert shape == RemoteHref("http://x/d")

    def test_empty_values_are_skipped(self) -> None:
        assert list(payload_shapes({"data": "", "href": ""})) == []


class TestDecodeInline:
    def test_data_uri(self) -> None:
        encoded = base64.b64encode(PDF).decode()
        assert decode_inline(InlineDataUri(f"data:application/pdf;base64,{encoded}")) == PDF

    def test_base64_with_line_breaks(self) -> None:
        encoded = base64.b64encode(PDF).decode()
        wrapped = encoded[:8] + "\n" + encoded[8:]
        assert decode_inline(InlineBase64(wrapped)) == PDF

    def test_non_base64_text_kept_as_raw_binary(self) -> None:
        assert decode_inline(InlineBase64("v 1.0 2.0\n")) == b"v 1.0 2.0\n"

    def test_remote_href_is_not_inline(self) -> None:
        with pytest.raises(TypeError):
            decode_inline(RemoteHref("http://x"))


class TestExtractPayload:
    async def test_inline_content_entry(self) -> None:
        result = {
            "content": [
                {"contentType": "application/pdf", "data": base64.b64encode(PDF).decode()}
            ]
        }
        data, picked = await extract_payload(result, None, _no_fetch())
        assert data == PDF
        assert picked["contentType"] == "application/pdf"

    async def test_href_fetched_when_no_inline_payload(self) -> None:
        fetch, seen = _recording_fetch(PDF)
        result = {"content": [{"contentType": "application/pdf", "href": "https://cdn/x.pdf"}]}
        data, _ = await extract_payload(result, None, fetch)
        assert data == PDF
        assert seen == ["https://cdn/x.pdf"]

    async def test_result_itself_is_the_entry(self) -> None:
        fetch, seen = _recording_fetch(PDF)
        data, picked = await extract_payload({"url": "https://cdn/y"}, None, fetch)
        assert data == PDF
        assert picked is None
        assert seen == ["https://cdn/y"]

    async def test_inline_wins_and_url_is_not_fetched(self) -> None:
        result = {"data": base64.b64encode(PDF).decode(), "href": "https://cdn/never"}
        data, _ = await extract_payload(result, None, _no_fetch())
        assert data == PDF

    async def test_nothing_usable(self) -> None:
        data, _ = await extract_payload({"content": [{"contentType": "x"}]}, None, _no_fetch())
        assert data is None
