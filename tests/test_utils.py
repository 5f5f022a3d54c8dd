import pytest

from filosign_core.utils import format_bytes, is_valid_retrieval_id, new_retrieval_id, normalize_address


@pytest.mark.parametrize("n,expected", [
    (0, "0 B"),
    (512, "512 B"),
    (1024, "1 KB"),
    (1536, "1.5 KB"),
    (5 * 1024 * 1024, "5 MB"),
    (3 * 1024 ** 3, "3 GB"),
])
def test_format_bytes(n, expected):
    assert format_bytes(n) == expected


def test_new_retrieval_ids():
    ids = {new_retrieval_id() for _ in range(500)}
    assert len(ids) == 500
    assert all(is_valid_retrieval_id(i) and i.startswith("FS") and len(i) == 14 for i in ids)


def test_normalize_address():
    assert normalize_address(" 0xAbCdEf0123456789aBcDeF0123456789ABCDEF01 ") == \
        "0xabcdef0123456789abcdef0123456789abcdef01"
    for bad in ("0x123", "abcdef0123456789abcdef0123456789abcdef01", "0x" + "g" * 40, None):
        with pytest.raises(ValueError):
            normalize_address(bad)
