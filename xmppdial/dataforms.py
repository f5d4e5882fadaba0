# This file is part of xmppdial.
#
# SPDX-License-Identifier: GPL-3.0-or-later

'''
XEP-0004 registration forms as lxml element classes

Forms received from the server get these classes through the registered
class lookups. A form handler fills the copy returned by make_submit().
'''

from __future__ import annotations

from typing import Any
from typing import Optional
from typing import Union

import copy

from xmppdial.elements import Base
from xmppdial.errors import WrongFieldValue
from xmppdial.jid import JID
from xmppdial.lookups import register_attribute_lookup
from xmppdial.lookups import register_class_lookup
from xmppdial.namespaces import Namespace


FIELD_TAG = '{%s}field' % Namespace.DATA

# ejabberd sends urn:xmpp:captcha for registration forms with a CAPTCHA
REGISTER_FORM_TYPES = ('jabber:iq:register', 'urn:xmpp:captcha')


class DataField(Base):

    @property
    def type(self) -> str:
        return self.get('type', 'text-single')

    @property
    def var(self) -> Optional[str]:
        return self.get('var')

    @property
    def label(self) -> Optional[str]:
        return self.get('label', self.var or None)

    @property
    def description(self) -> Optional[str]:
        return self.find_tag_text('desc') or None

    @property
    def required(self) -> bool:
        return self.find_tag('required') is not None

    @property
    def media_cids(self) -> list[str]:
        '''
        Content ids of XEP-0221 media uris, resolved against the
        Bits of Binary data sent with the form
        '''
        media = self.find_tag('media', namespace=Namespace.DATA_MEDIA)
        if media is None:
            return []

        cids: list[str] = []
        for uri in media.iter_tags('uri'):
            text = uri.text or ''
            if text.startswith('cid:'):
                cids.append(text[4:])
        return cids

    def strip_presentation(self) -> None:
        self.attrib.pop('label', None)
        self.remove_tags('desc')
        self.remove_tags('media', namespace=Namespace.DATA_MEDIA)

    def is_valid(self) -> bool:
        return True


class BooleanField(DataField):

    @property
    def value(self) -> bool:
        return self.find_tag_text('value') in ('1', 'true')

    def set_value(self, value: Union[str, bool, int]) -> None:
        if value in ('0', 'false', 0, False):
            text = 'false'
        elif value in ('1', 'true', 1, True):
            text = 'true'
        else:
            raise ValueError('Invalid value for boolean field: %s' % value)
        self.remove_tags('value')
        self.add_tag_text('value', text)


class StringField(DataField):

    @property
    def value(self) -> Optional[str]:
        return self.find_tag_text('value')

    def set_value(self, value: Any) -> None:
        self.remove_tags('value')
        self.add_tag_text('value', '' if value is None else str(value))

    def is_valid(self) -> bool:
        return bool(self.value) or not self.required


class JidSingleField(StringField):

    def is_valid(self) -> bool:
        if not self.value:
            return not self.required

        try:
            JID.from_string(self.value)
        except Exception:
            return False
        return True


class MultiValueField(DataField):

    @property
    def values(self) -> list[str]:
        values: list[str] = []
        for element in self.find_tags('value'):
            if element.text is None:
                raise WrongFieldValue
            values.append(element.text)
        return values

    def is_valid(self) -> bool:
        return bool(self.values) or not self.required


class ListField(DataField):

    @property
    def options(self) -> list[tuple[str, str]]:
        options: list[tuple[str, str]] = []
        for element in self.find_tags('option'):
            value = element.find_tag_text('value')
            if value is None:
                raise WrongFieldValue
            options.append((element.get('label') or value, value))
        return options


class ListSingleField(ListField, StringField):
    pass


class ListMultiField(ListField, MultiValueField):
    pass


class DataForm(Base):

    @property
    def type(self) -> Optional[str]:
        return self.get('type')

    @property
    def title(self) -> Optional[str]:
        return self.find_tag_text('title')

    @property
    def instructions(self) -> str:
        return '\n'.join(element.text or '' for
                         element in self.find_tags('instructions'))

    @property
    def fields(self) -> list[DataField]:
        return self.find_tags('field')

    def get_field(self, var: str) -> Optional[DataField]:
        for field in self.iter_tags('field'):
            if field.var == var:
                return field
        return None

    def get_form_type(self) -> Optional[str]:
        field = self.get_field('FORM_TYPE')
        if field is None:
            return None
        return field.value

    def is_registration_form(self) -> bool:
        return self.get_form_type() in REGISTER_FORM_TYPES

    def get_media_cids(self) -> list[str]:
        cids: list[str] = []
        for field in self.iter_tags('field'):
            cids.extend(field.media_cids)
        return cids

    def is_valid(self) -> bool:
        return all(field.is_valid() for field in self.iter_tags('field'))

    def make_submit(self) -> DataForm:
        '''
        Returns a copy of the form reduced to what a submit carries,
        the received form is not changed
        '''
        dataform = copy.deepcopy(self)
        dataform.set('type', 'submit')
        dataform.remove_tags('title')
        dataform.remove_tags('instructions')

        for field in dataform.fields:
            if field.type == 'fixed':
                dataform.remove(field)
                continue
            field.strip_presentation()

        return dataform


register_attribute_lookup(FIELD_TAG, 'type', 'boolean', BooleanField)
register_attribute_lookup(FIELD_TAG, 'type', 'fixed', StringField)
register_attribute_lookup(FIELD_TAG, 'type', 'hidden', StringField)
register_attribute_lookup(FIELD_TAG, 'type', 'text-private', StringField)
register_attribute_lookup(FIELD_TAG, 'type', None, StringField)
register_attribute_lookup(FIELD_TAG, 'type', 'text-single', StringField)
register_attribute_lookup(FIELD_TAG, 'type', 'jid-single', JidSingleField)
register_attribute_lookup(FIELD_TAG, 'type', 'jid-multi', MultiValueField)
register_attribute_lookup(FIELD_TAG, 'type', 'text-multi', MultiValueField)
register_attribute_lookup(FIELD_TAG, 'type', 'list-single', ListSingleField)
register_attribute_lookup(FIELD_TAG, 'type', 'list-multi', ListMultiField)

register_class_lookup('x', Namespace.DATA, DataForm)
