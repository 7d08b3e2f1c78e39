"""Tests for warble.http.query: query string and form decoding."""

from warble.http.query import decode_params


class TestDecodeParams:
    def test_single_values(self) -> None:
        assert decode_params("q=hello&page=2") == {"q": "hello", "page": "2"}

    def test_repeated_name_becomes_list(self) -> None:
        assert decode_params("tag=a&page=2&tag=b&tag=c") == {"tag": ["a", "b", "c"], "page": "2"}

    def test_blank_values_kept(self) -> None:
        assert decode_params("flag=&x=1") == {"flag": "", "x": "1"}

    def test_percent_decoding(self) -> None:
        assert decode_params("q=a%20b%26c&name=caf%C3%A9") == {"q": "a b&c", "name": "café"}

    def test_plus_is_space(self) -> None:
        assert decode_params("q=two+words") == {"q": "two words"}

    def test_invalid_utf8_escape_replaced(self) -> None:
        assert decode_params("q=%FF") == {"q": "\ufffd"}

    def test_empty(self) -> None:
        assert decode_params("") == {}
