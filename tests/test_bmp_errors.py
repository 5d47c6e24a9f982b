import pytest

from bmp_errors import (
    BMPError,
    BMPStatus,
    InvalidArgument,
    InvalidFile,
    describe,
    get_last_error,
    get_last_error_description,
    records_status,
)


def test_describe_is_a_table_lookup():
    assert describe(BMPStatus.OK) == ""
    assert describe(BMPStatus.OUT_OF_MEMORY) == "Could not allocate enough memory to complete the operation"
    assert describe(6) == "File is not a valid BMP image"
    assert describe(BMPStatus.TYPE_MISMATCH) == "The requested action is not compatible with the BMP's type"


def test_describe_unknown_status():
    with pytest.raises(InvalidArgument):
        describe(99)


def test_exception_defaults():
    e = InvalidFile()
    assert e.status == BMPStatus.FILE_INVALID
    assert str(e) == describe(BMPStatus.FILE_INVALID)
    assert isinstance(e, ValueError)
    assert isinstance(e, BMPError)


def test_records_status():
    @records_status
    def ok():
        return 1

    @records_status
    def bad():
        raise InvalidFile("nope")

    @records_status
    def boom():
        raise KeyError("x")

    with pytest.raises(InvalidFile):
        bad()
    assert get_last_error() == BMPStatus.FILE_INVALID

    assert ok() == 1
    assert get_last_error() == BMPStatus.OK
    assert get_last_error_description() is None

    with pytest.raises(KeyError):
        boom()
    assert get_last_error() == BMPStatus.GENERAL_ERROR
    assert get_last_error_description() == "General error"
