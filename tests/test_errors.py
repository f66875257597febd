from labnet.codec import DecodeError, EncodeError
from labnet.errors import (
    DecodeFailure,
    EncodeFailure,
    OtherError,
    RecvError,
    RpcError,
    RpcTimeout,
    Stopped,
    Unimplemented,
)


ALL_ERRORS = [
    Unimplemented("unknown junk.x"),
    EncodeFailure(EncodeError("bad field")),
    DecodeFailure(DecodeError("buffer underflow")),
    RecvError(),
    RpcTimeout(),
    Stopped(),
    OtherError("reqhook"),
]


def test_every_error_is_caught_as_rpc_error():
    errors = [
        Unimplemented("unknown junk.x"),
        EncodeFailure(EncodeError("bad field")),
        DecodeFailure(DecodeError("buffer underflow")),
        RecvError(),
        RpcTimeout(),
        Stopped(),
        OtherError("reqhook"),
    ]
    caught = []
    for error in errors:
        try:
            raise error
        except RpcError as exc:
            caught.append(exc)
    assert caught == errors


def test_equal_by_type_and_details():
    assert OtherError("reqhook") == OtherError("reqhook")
    assert OtherError("reqhook") != OtherError("resphook")
    assert RpcTimeout() == RpcTimeout()
    assert Stopped() == Stopped()
    assert RecvError() == RecvError()


def test_different_kinds_differ():
    for i, first in enumerate(ALL_ERRORS):
        for j, second in enumerate(ALL_ERRORS):
            assert (first == second) == (i == j)


def test_unimplemented_and_other_are_distinct_with_same_message():
    assert Unimplemented("reqhook") != OtherError("reqhook")


def test_wrapped_errors_compare_by_content():
    assert DecodeFailure(DecodeError("buffer underflow")) == DecodeFailure(
        DecodeError("buffer underflow")
    )
    assert DecodeFailure(DecodeError("buffer underflow")) != DecodeFailure(
        DecodeError("invalid varint")
    )
    assert EncodeFailure(EncodeError("bad field")) == EncodeFailure(EncodeError("bad field"))


def test_wrapped_error_is_cause():
    cause = DecodeError("buffer underflow")
    error = DecodeFailure(cause)
    assert error.error is cause
    assert error.__cause__ is cause
    encode_cause = EncodeError("bad field")
    assert EncodeFailure(encode_cause).__cause__ is encode_cause


def test_hashable_and_consistent_with_equality():
    errors = {OtherError("reqhook"), OtherError("reqhook"), RpcTimeout(), RpcTimeout()}
    assert len(errors) == 2
    assert OtherError("reqhook") in errors


def test_messages_are_kept():
    assert Unimplemented("unknown junk").message == "unknown junk"
    assert OtherError("resphook").message == "resphook"
    assert str(OtherError("resphook")) == "resphook"
    assert "unknown junk" in str(Unimplemented("unknown junk"))
    assert "buffer underflow" in str(DecodeFailure(DecodeError("buffer underflow")))


def test_not_equal_to_plain_exceptions():
    error = OtherError("reqhook")
    assert (error == ValueError("reqhook")) is False
    assert [error].count(ValueError("reqhook")) == 0
    assert [error].count(OtherError("reqhook")) == 1