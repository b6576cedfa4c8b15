import re
import string
from datetime import datetime, timedelta, timezone

import pytest

from blobstage.keys import (
    ArtifactDescriptor,
    ArtifactKind,
    base_name,
    date_partition,
    derive_key,
    sanitize_identifier,
)
from blobstage.models import Header

MARCH_5 = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)
KEY_PATTERN = re.compile(r"^[A-Za-z0-9.\-_/]+$")


def _descriptor(transmission: str, sender: str, receiver: str, kind: ArtifactKind = ArtifactKind.PAYLOAD):
    return ArtifactDescriptor.for_artifact(kind, transmission, Header(sender=sender, receiver=receiver))


def test_derive_key_example() -> None:
    descriptor = _descriptor(
        "c0f1e2-abc",
        sender="urn:oasis:9908:889640782",
        receiver="urn:oasis:9908:810017902",
    )

    assert derive_key(descriptor, MARCH_5) == (
        "payload/2024/03/05/urn_oasis_9908_810017902_urn_oasis_9908_889640782_c0f1e2-abc.payload.xml"
    )


def test_receipt_key_uses_receipt_prefix_and_suffix() -> None:
    descriptor = _descriptor("tx-1", "sender", "receiver", ArtifactKind.RECEIPT)

    assert derive_key(descriptor, MARCH_5) == "receipt/2024/03/05/receiver_sender_tx-1.receipt.dat"


@pytest.mark.parametrize(
    "raw",
    [
        string.printable,
        string.punctuation,
        "../../etc/passwd",
        "urn:oasis:names:tc:ebcore:partyid-type:iso6523:0088",
        "<msg id=\"42\">\t\n",
        "æøå ü ß 中文",
    ],
)
def test_sanitized_keys_only_contain_safe_characters(raw: str) -> None:
    descriptor = _descriptor(raw, raw, raw)

    key = derive_key(descriptor, MARCH_5)

    assert KEY_PATTERN.match(key)
    # Only the partition separators remain as slashes.
    assert key.count("/") == 4
    assert re.fullmatch(r"[A-Za-z0-9.\-_]*", sanitize_identifier(raw))


def test_each_unsafe_character_becomes_underscore() -> None:
    for char in string.printable:
        expected = char if re.match(r"[A-Za-z0-9.\-]", char) else "_"
        assert sanitize_identifier(char) == expected


def test_empty_identifiers_produce_valid_key() -> None:
    descriptor = _descriptor("", sender="", receiver="")

    key = derive_key(descriptor, MARCH_5)

    assert key == "payload/2024/03/05/__.payload.xml"
    assert KEY_PATTERN.match(key)


def test_none_identifier_is_treated_as_empty() -> None:
    assert sanitize_identifier(None) == ""


def test_date_partition_is_taken_in_utc() -> None:
    plus_two = timezone(timedelta(hours=2))
    local_morning = datetime(2024, 3, 6, 1, 30, tzinfo=plus_two)

    assert date_partition(local_morning) == "2024/03/05"


def test_date_partition_defaults_to_now() -> None:
    assert re.fullmatch(r"\d{4}/\d{2}/\d{2}", date_partition())


def test_distinct_transmissions_get_distinct_keys() -> None:
    first = derive_key(_descriptor("tx-1", "s", "r"), MARCH_5)
    second = derive_key(_descriptor("tx-2", "s", "r"), MARCH_5)

    assert first != second


def test_base_name_has_no_partition() -> None:
    descriptor = _descriptor("tx/1", "s", "r")

    assert base_name(descriptor) == "r_s_tx_1.payload.xml"
