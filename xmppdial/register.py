# Copyright (C) 2018 Philipp Hörist <philipp AT hoerist.com>
#
# This file is part of xmppdial.
#
# SPDX-License-Identifier: GPL-3.0-or-later

'''
XEP-0077 In-Band Registration

Account creation runs inside the stream negotiation, before authentication.
Cancelling a registration needs a bound session and only sends the request.
'''

from __future__ import annotations

from typing import Optional
from typing import TYPE_CHECKING

import logging
from concurrent.futures import Future

from xmppdial.bits_of_binary import parse_all_bob_data
from xmppdial.builder import RegisterQuery as RegisterQueryRequest
from xmppdial.builder import UnregisterRequest
from xmppdial.const import REGISTER_ERROR_CODES
from xmppdial.const import REGISTER_FIELDS
from xmppdial.const import RegistrationState
from xmppdial.const import Stage
from xmppdial.elements import Iq
from xmppdial.errors import MissingRequiredRegistrationInfo
from xmppdial.errors import RegistrationFailed
from xmppdial.errors import StanzaError
from xmppdial.errors import StanzaMalformed
from xmppdial.errors import UsernameConflict
from xmppdial.namespaces import Namespace
from xmppdial.structs import FormHandler
from xmppdial.structs import RegisterQuery
from xmppdial.util import LogAdapter
from xmppdial.util import generate_id
from xmppdial.util import negotiation_step

if TYPE_CHECKING:
    from xmppdial.session import Session
    from xmppdial.stream import XMLStream

log = logging.getLogger('xmppdial.register')


def parse_register_query(response: Iq) -> RegisterQuery:
    query = response.get_query(Namespace.REGISTER)
    if query is None:
        raise StanzaMalformed('No register query in response')

    fields = [child.localname for child in query
              if child.namespace == Namespace.REGISTER and
              child.localname in REGISTER_FIELDS]

    return RegisterQuery(
        instructions=query.find_tag_text('instructions') or None,
        form=query.find_tag('x', namespace=Namespace.DATA),
        bob_data=parse_all_bob_data(query),
        fields=fields)


def map_registration_error(error: StanzaError) -> RegistrationFailed:
    condition = REGISTER_ERROR_CODES.get(error.code)
    if condition == 'conflict':
        return UsernameConflict(stanza_error=error)

    if condition == 'not-acceptable':
        return MissingRequiredRegistrationInfo(stanza_error=error)

    return RegistrationFailed(str(error), stanza_error=error)


class RegistrationHandler:
    def __init__(self,
                 stream: XMLStream,
                 form_handler: Optional[FormHandler],
                 log_context: Optional[str] = None) -> None:

        self._stream = stream
        self._form_handler = form_handler
        self._log = LogAdapter(log, {'context': log_context or ''})

    @property
    def is_configured(self) -> bool:
        return self._form_handler is not None

    def create_account(self,
                       username: str,
                       password: str) -> RegistrationState:

        if self._form_handler is None:
            return RegistrationState.NOT_REQUESTED

        self._log.info('Attempting to create account')

        with negotiation_step(Stage.REGISTER):
            query = self._request_query()
            request = self._make_request(query, username, password)

            self._stream.send(request, sensitive=True)
            response = self._stream.read_reply(request.id)

        if response.is_error:
            error = map_registration_error(response.get_error())
            self._log.warning('Account creation failed: %s', error)
            raise error

        self._log.info('Account created')
        return RegistrationState.CREATED

    def _request_query(self) -> RegisterQuery:
        request = RegisterQueryRequest('get', id=generate_id())
        self._stream.send(request)

        response = self._stream.read_reply(request.id)
        if not response.is_result:
            raise RegistrationFailed(stanza_error=response.get_error())

        return parse_register_query(response)

    def _make_request(self,
                      query: RegisterQuery,
                      username: str,
                      password: str) -> Iq:

        request = RegisterQueryRequest('set', id=generate_id())
        payload = request.get_query(Namespace.REGISTER)

        if query.has_form:
            self._log.info('Server sent a registration form')
            reply = self._form_handler(query.form, query.bob_data)
            payload.append(reply)

        elif query.has_legacy_fields:
            self._log.info('Server uses legacy registration fields')
            payload.add_tag_text('username', username)
            payload.add_tag_text('password', password)

        else:
            raise RegistrationFailed('Server offered neither a registration '
                                     'form nor username and password fields')

        return request


def cancel_registration(session: Session) -> tuple[Future[Iq], str]:
    '''
    Asks the server to remove the account, does not wait for the reply
    '''
    return session.send_iq(None, 'set', UnregisterRequest())
