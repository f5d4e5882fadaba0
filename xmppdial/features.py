# This file is part of xmppdial.
#
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

from typing import cast

from xmppdial.elements import Nonza
from xmppdial.lookups import register_class_lookup
from xmppdial.namespaces import Namespace


class Features(Nonza):

    def has_starttls(self) -> tuple[bool, bool]:
        tls = self.find_tag('starttls', namespace=Namespace.TLS)
        if tls is not None:
            required = tls.find_tag('required') is not None
            return True, required
        return False, False

    def has_sasl(self) -> bool:
        return self.find_tag('mechanisms',
                             namespace=Namespace.SASL) is not None

    def get_mechs(self) -> set[str]:
        mechanisms = self.find_tag('mechanisms', namespace=Namespace.SASL)
        if mechanisms is None:
            return set()

        mechs = mechanisms.find_tags('mechanism')
        mechs = list(filter(lambda m: m.text is not None, mechs))
        return cast(set[str], {mech.text for mech in mechs})

    def has_bind(self) -> bool:
        return self.find_tag('bind', namespace=Namespace.BIND) is not None

    def session_required(self) -> bool:
        session = self.find_tag('session', namespace=Namespace.SESSION)
        if session is not None:
            optional = session.find_tag('optional') is not None
            return not optional
        return False

    def has_register(self) -> bool:
        return self.find_tag(
            'register', namespace=Namespace.REGISTER_FEATURE) is not None


register_class_lookup('features', Namespace.STREAMS, Features)
