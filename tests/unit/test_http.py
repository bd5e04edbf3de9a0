# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import copy
from io import BytesIO

import pytest
from sp_api_signers import URI, AWSRequest, CanonicalizationError, Field, Fields
from sp_api_signers._http import resolve_path_template


def test_field_single_valued_basics() -> None:
    field = Field(name="fname", values=["fval"])
    assert field.name == "fname"
    assert field.values == ["fval"]
    assert field.as_string() == "fval"
    assert field.as_tuples() == [("fname", "fval")]


def test_field_multi_valued_basics() -> None:
    field = Field(name="fname", values=["fval1", "fval2"])
    assert field.as_string() == "fval1,fval2"
    assert field.as_string(delimiter=", ") == "fval1, fval2"
    assert field.as_tuples() == [("fname", "fval1"), ("fname", "fval2")]


def test_field_add_set_remove() -> None:
    field = Field(name="fname", values=["a"])
    field.add("b")
    field.add("a")
    assert field.values == ["a", "b", "a"]
    field.remove("a")
    assert field.values == ["b"]
    field.set(["c", "d"])
    assert field.values == ["c", "d"]


def test_field_equality() -> None:
    assert Field(name="fname", values=["a"]) == Field(name="fname", values=["a"])
    assert Field(name="fname", values=["a"]) != Field(name="fname", values=["b"])
    assert Field(name="fname", values=["a"]) != "fname: a"


def test_fields_are_case_insensitive() -> None:
    fields = Fields([Field(name="Content-Type", values=["application/json"])])
    assert "content-type" in fields
    assert fields["CONTENT-TYPE"].values == ["application/json"]
    assert fields.get("missing") is None
    fields.set_field(Field(name="content-type", values=["text/plain"]))
    assert len(fields) == 1
    assert fields["Content-Type"].values == ["text/plain"]


def test_fields_reject_duplicate_initial_names() -> None:
    with pytest.raises(ValueError):
        Fields([Field(name="X-Foo", values=["1"]), Field(name="x-foo", values=["2"])])


def test_fields_setitem_name_mismatch() -> None:
    fields = Fields()
    with pytest.raises(ValueError):
        fields["x-foo"] = Field(name="x-bar", values=["1"])


def test_fields_delete_and_remove() -> None:
    fields = Fields.from_mapping({"X-Foo": "1", "X-Bar": ["2", "3"]})
    assert fields["x-bar"].values == ["2", "3"]
    del fields["x-foo"]
    fields.remove_field("x-bar")
    fields.remove_field("x-missing")
    assert len(fields) == 0


@pytest.mark.parametrize(
    "uri, expected",
    [
        (URI(host="example.com"), "https://example.com"),
        (URI(host="example.com", port=8443, path="/a"), "https://example.com:8443/a"),
        (
            URI(scheme="http", host="example.com", path="/a", query="b=1", fragment="c"),
            "http://example.com/a?b=1#c",
        ),
    ],
)
def test_uri_build(uri: URI, expected: str) -> None:
    assert uri.build() == expected


@pytest.mark.parametrize(
    "path, parameters, expected",
    [
        ("/items", {}, "/items"),
        ("/items/{sku}", {"sku": "ABC"}, "/items/ABC"),
        ("/items/{sku}", {"sku": "a,b/c d"}, "/items/a%2Cb%2Fc%20d"),
        ("/{a}/{b}/{a}", {"a": "1", "b": "2"}, "/1/2/1"),
    ],
)
def test_resolve_path_template(
    path: str, parameters: dict[str, str], expected: str
) -> None:
    assert resolve_path_template(path, parameters) == expected


@pytest.mark.parametrize("path", ["/items/{sku}", "/items/{sku", "/items/}"])
def test_resolve_path_template_errors(path: str) -> None:
    with pytest.raises(CanonicalizationError):
        resolve_path_template(path, {})


def test_resolved_destination() -> None:
    request = AWSRequest(
        destination=URI(host="example.com", path="/items/{sku}", query="x=1"),
        method="GET",
        path_parameters={"sku": "a/b"},
    )
    assert request.resolved_destination.build() == "https://example.com/items/a%2Fb?x=1"
    assert request.destination.path == "/items/{sku}"


def test_request_deepcopy_copies_fields_only() -> None:
    body = BytesIO(b"payload")
    request = AWSRequest(
        destination=URI(host="example.com"),
        method="PUT",
        fields=Fields([Field(name="X-Foo", values=["1"])]),
        body=body,
        path_parameters={"sku": "a"},
    )
    new_request = copy.deepcopy(request)
    assert new_request is not request
    assert new_request.destination is request.destination
    assert new_request.body is body
    assert new_request.fields == request.fields
    new_request.fields["x-foo"].add("2")
    assert request.fields["x-foo"].values == ["1"]
    assert new_request.path_parameters == {"sku": "a"}
