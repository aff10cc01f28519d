"""Validation rules of the RFD write model."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from rfd_store.models import RFDWrite


class TestNumberString:
    """number_string must denote the same value as number."""

    @pytest.mark.parametrize("number_string", ["0042", "42", "000042"])
    def test_padding_is_accepted(self, make_rfd, number_string):
        rfd = RFDWrite(**make_rfd(number=42, number_string=number_string))
        assert rfd.number_string == number_string

    @pytest.mark.parametrize("number_string", ["0041", "00a2", "-42", "42 ", "４２"])
    def test_mismatch_is_rejected(self, make_rfd, number_string):
        with pytest.raises(ValidationError, match="does not denote number 42"):
            RFDWrite(**make_rfd(number=42, number_string=number_string))

    def test_number_must_be_positive(self, make_rfd):
        with pytest.raises(ValidationError):
            RFDWrite(**make_rfd(number=0, number_string="0000"))

    def test_number_fits_an_integer_column(self, make_rfd):
        assert RFDWrite(**make_rfd(number=2_147_483_647, number_string="2147483647")).number == 2_147_483_647

        with pytest.raises(ValidationError, match="number"):
            RFDWrite(**make_rfd(number=2_147_483_648, number_string="2147483648"))


class TestAlwaysPopulated:
    """Text fields are never null; some may be empty."""

    @pytest.mark.parametrize("field", ["title", "name", "state", "link", "short_link", "rendered_link"])
    def test_required_text_cannot_be_blank(self, make_rfd, field):
        with pytest.raises(ValidationError):
            RFDWrite(**make_rfd(**{field: "   "}))

    @pytest.mark.parametrize("field", ["discussion", "authors", "html", "content", "sha"])
    def test_text_may_be_empty(self, make_rfd, field):
        rfd = RFDWrite(**make_rfd(**{field: ""}))
        assert getattr(rfd, field) == ""

    @pytest.mark.parametrize("field", ["discussion", "authors", "html", "content", "sha", "milestones"])
    def test_none_is_rejected(self, make_rfd, field):
        with pytest.raises(ValidationError):
            RFDWrite(**make_rfd(**{field: None}))

    def test_optional_fields_default_to_empty(self, make_rfd):
        fields = make_rfd()
        for key in ("discussion", "authors", "milestones", "relevant_complaints"):
            del fields[key]

        rfd = RFDWrite(**fields)

        assert rfd.discussion == ""
        assert rfd.authors == ""
        assert rfd.milestones == []
        assert rfd.relevant_complaints == []

    @pytest.mark.parametrize("field", ["html", "content", "sha", "commit_date"])
    def test_revision_fields_are_required(self, make_rfd, field):
        fields = make_rfd()
        del fields[field]
        with pytest.raises(ValidationError):
            RFDWrite(**fields)


class TestCommitDate:
    def test_naive_datetime_is_rejected(self, make_rfd):
        with pytest.raises(ValidationError, match="timezone-aware"):
            RFDWrite(**make_rfd(commit_date=datetime(2020, 9, 7, 0, 12, 7)))

    def test_iso_string_with_offset_is_parsed(self, make_rfd):
        rfd = RFDWrite(**make_rfd(commit_date="2020-09-07T02:12:07+02:00"))
        assert rfd.commit_date.utcoffset() == timedelta(hours=2)
        assert rfd.commit_date == datetime(2020, 9, 7, 0, 12, 7, tzinfo=timezone.utc)


def test_tags_keep_order_and_duplicates(make_rfd):
    rfd = RFDWrite(**make_rfd(milestones=["v2", "v1", "v2"], relevant_complaints=["b", "a"]))
    assert rfd.milestones == ["v2", "v1", "v2"]
    assert rfd.relevant_complaints == ["b", "a"]
