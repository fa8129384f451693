from __future__ import annotations

from typing import List

from contactmap.mapping import ClassMap, ConventionPack, ReadOnlyPropertiesConvention


class Base:
    @property
    def label(self) -> str:
        return "base"


class Sample(Base):
    counter: int

    def __init__(self) -> None:
        self.counter = 0
        self._title = "sample"
        self._items: List[str] = ["a", "b"]

    @property
    def title(self) -> str:
        return self._title

    @property
    def editable(self) -> str:
        return self._title

    @editable.setter
    def editable(self, value: str) -> None:
        self._title = value

    item_at = property(lambda self, index: self._items[index])

    @property
    def label(self) -> str:
        return "sample"

    @property
    def _secret(self) -> str:
        return "hidden"

    def describe(self) -> str:
        return self._title


def _mapped_names(class_map: ClassMap) -> List[str]:
    return [member.member_name for member in class_map.declared_member_maps]


def _bare_map() -> ClassMap:
    return ClassMap(Sample)


def test_plain_read_only_property_is_included() -> None:
    class_map = _bare_map()
    ReadOnlyPropertiesConvention().apply(class_map)
    assert _mapped_names(class_map) == ["title"]


def test_predicate_cases() -> None:
    class_map = _bare_map()
    members = vars(Sample)
    check = ReadOnlyPropertiesConvention.is_read_only_property
    assert check(class_map, "title", members["title"])
    assert not check(class_map, "editable", members["editable"])
    assert not check(class_map, "item_at", members["item_at"])
    assert not check(class_map, "label", members["label"])
    assert not check(class_map, "describe", members["describe"])


def test_read_write_property_comes_from_the_default_pass() -> None:
    class_map = ClassMap(Sample).auto_map()
    assert _mapped_names(class_map) == ["editable", "counter"]

    with_convention = ClassMap(Sample, conventions=[ConventionPack([ReadOnlyPropertiesConvention()])])
    with_convention.auto_map()
    assert _mapped_names(with_convention) == ["editable", "counter", "title"]


def test_applying_twice_does_not_duplicate_members() -> None:
    class_map = _bare_map()
    convention = ReadOnlyPropertiesConvention()
    convention.apply(class_map)
    convention.apply(class_map)
    assert _mapped_names(class_map) == ["title"]


def test_non_public_properties_need_opt_in() -> None:
    class_map = _bare_map()
    ReadOnlyPropertiesConvention(include_non_public=True).apply(class_map)
    assert _mapped_names(class_map) == ["title", "_secret"]


def test_class_without_read_only_members_is_left_alone() -> None:
    class Plain:
        @property
        def value(self) -> int:
            return 1

        @value.setter
        def value(self, _value: int) -> None:
            pass

    class_map = ClassMap(Plain)
    ReadOnlyPropertiesConvention().apply(class_map)
    assert class_map.declared_member_maps == []


def test_pack_filter_limits_where_conventions_apply() -> None:
    pack = ConventionPack([ReadOnlyPropertiesConvention()], applies_to=lambda cls: cls is not Sample)
    class_map = ClassMap(Sample, conventions=[pack]).auto_map()
    assert "title" not in _mapped_names(class_map)
    assert len(pack) == 1


class WithMethod:
    def summary(self) -> str:
        return "method"

    kind = "plain"


class ShadowsMethod(WithMethod):
    @property
    def summary(self) -> str:
        return "property"

    @property
    def kind(self) -> str:
        return "shadowed"


def test_property_shadowing_a_base_method_or_attribute_is_still_mapped() -> None:
    class_map = ClassMap(ShadowsMethod)
    ReadOnlyPropertiesConvention().apply(class_map)
    assert _mapped_names(class_map) == ["summary", "kind"]
