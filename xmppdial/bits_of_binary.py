# Copyright (C) 2018 Philipp Hörist <philipp AT hoerist.com>
#
# This file is part of xmppdial.
#
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

from typing import Optional

import hashlib
import logging

from xmppdial.elements import Base
from xmppdial.namespaces import Namespace
from xmppdial.structs import BobData
from xmppdial.util import b64decode

log = logging.getLogger('xmppdial.bob')


def parse_bob_data(data_node: Base) -> Optional[BobData]:
    cid = data_node.get('cid')
    type_ = data_node.get('type')
    max_age = data_node.get('max-age', '0')
    try:
        max_age = int(max_age)
    except Exception:
        log.exception('Invalid max-age: %s', data_node)
        return None

    if cid is None or type_ is None:
        log.warning('Invalid data node (no cid or type attr): %s', data_node)
        return None

    try:
        algo_hash = cid.split('@')[0]
        algo, hash_ = algo_hash.split('+')
    except Exception:
        log.exception('Invalid cid: %s', data_node)
        return None

    bob_data = data_node.text
    if not bob_data:
        log.warning('No bob data found: %s', data_node)
        return None

    try:
        bob_data = b64decode(bob_data)
    except Exception:
        log.warning('Unable to decode data')
        log.exception(data_node)
        return None

    try:
        sha = hashlib.new(algo)
    except ValueError as error:
        log.warning(data_node)
        log.warning(error)
        return None

    sha.update(bob_data)
    if sha.hexdigest() != hash_:
        log.warning('Invalid hash: %s', data_node)
        return None

    return BobData(algo=algo,
                   hash_=hash_,
                   max_age=max_age,
                   data=bob_data,
                   cid=cid,
                   type=type_)


def parse_all_bob_data(element: Base) -> list[BobData]:
    result: list[BobData] = []
    for data_node in element.iter_tags('data', namespace=Namespace.BOB):
        bob_data = parse_bob_data(data_node)
        if bob_data is not None:
            result.append(bob_data)
    return result
