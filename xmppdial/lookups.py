# Copyright (C) 2021 Philipp Hörist <philipp AT hoerist.com>
#
# This file is part of xmppdial.
#
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

from collections import defaultdict

from typing import Any
from typing import Optional

from lxml import etree

from xmppdial.elements import Base
from xmppdial.elements import Iq
from xmppdial.namespaces import Namespace


class ClassAttributeLookup(etree.PythonElementClassLookup):

    _class_lookups: defaultdict[str, defaultdict[str, dict[Optional[str], Any]]] = \
        defaultdict(lambda: defaultdict(dict))

    @classmethod
    def register(cls,
                 tag: str,
                 attr: str,
                 value: Optional[str],
                 element_class: Any):
        cls._class_lookups[tag][attr][value] = element_class

    def lookup(self, _document: Any, element: Any) -> Optional[Any]:
        attribute_lookups = self._class_lookups.get(element.tag)
        if attribute_lookups is None:
            return None

        for attr, value_class_dict in attribute_lookups.items():
            value = element.get(attr)
            class_ = value_class_dict.get(value)
            if class_ is None:
                continue
            return class_

        return None


def register_attribute_lookup(tag: str,
                              attr: str,
                              value: Optional[str],
                              element_class: Any):
    ClassAttributeLookup.register(tag, attr, value, element_class)


def register_class_lookup(tag: str,
                          namespace: str,
                          element_class: Any):

    _NamespaceLookup.get_namespace(namespace)[tag] = element_class


# Fallback order is important
_BaseLookup = etree.ElementDefaultClassLookup(element=Base)
_NamespaceLookup = etree.ElementNamespaceClassLookup(fallback=_BaseLookup)
_ClassAttributeLookup = ClassAttributeLookup(fallback=_NamespaceLookup)

ElementLookup = _ClassAttributeLookup


register_class_lookup('iq', Namespace.CLIENT, Iq)
