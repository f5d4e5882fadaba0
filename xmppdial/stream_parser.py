# Copyright (C) 2021 Philipp Hörist <philipp AT hoerist.com>
#
# This file is part of xmppdial.
#
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

from copy import deepcopy

from typing import Any
from typing import Union
from typing import cast

import logging

from lxml import etree

from xmppdial.lookups import ElementLookup
from xmppdial.util import Observable
from xmppdial.util import LogAdapter

# Element classes register their lookups on import
from xmppdial import dataforms  # noqa: F401
from xmppdial import features  # noqa: F401


log = logging.getLogger('xmppdial.parser')


PARSER_SETTINGS = {
    'load_dtd': False,
    'dtd_validation': False,
    'no_network': True,
    'recover': False,
    'resolve_entities': False,
    'remove_comments': True,
    'remove_pis': True,
}


class TCPStreamParser(Observable):
    '''
    Incremental parser for one XML stream

    Emits 'stream-start' with the stream header, 'element' for every top
    level element and 'stream-end' when the server closes the stream.
    '''

    _dispatch_depth = 1

    def __init__(self, log_context: str) -> None:
        Observable.__init__(self, log)

        self._log = LogAdapter(log, {'context': log_context})
        self._destroyed = False
        self._depth = 0
        self._parser = self._create_parser()

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    def _create_parser(self) -> etree.XMLPullParser:
        parser = etree.XMLPullParser(events=['start', 'end'],
                                     **PARSER_SETTINGS)

        parser.set_element_class_lookup(ElementLookup)
        return parser

    def feed(self, data: Union[str, bytes]) -> None:
        if self._destroyed:
            raise ValueError('Parser is destroyed')

        self._parser.feed(data)
        for action, element in list(self._parser.read_events()):
            if action == 'start':
                if self._depth == 0:
                    element = self._cleanup_stream_start(element)
                    self.notify('stream-start', element)
                self._depth += 1

            elif action == 'end':
                self._depth -= 1
                if self._depth == self._dispatch_depth:
                    self.notify('element', element)
                    self._free_elements(element)

                if self._depth == 0:
                    self.notify('stream-end', element)
                    self.destroy()
                    break

    def _free_elements(self, element: Any) -> None:
        '''
        XMLPullParser stores the whole tree in memory by default.
        this deletes all previous siblings from the tree and frees the memory
        '''
        if element.getprevious() is not None:
            del element.getparent()[0]

    def _cleanup_stream_start(self, element: Any) -> Any:
        '''
        The first data contains often also the stream features. So the first
        element lxml yields already has a features child. This removes it so it
        creates no confusion.
        '''
        element = deepcopy(element)
        for child in list(element):
            element.remove(child)
        return element

    def destroy(self) -> None:
        self.remove_subscriptions()
        self._destroyed = True
        try:
            self._parser.close()
        except etree.XMLSyntaxError:
            pass
        self._parser = cast(etree.XMLPullParser, None)
