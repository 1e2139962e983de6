##
# Copyright (c) 2005-2017 Apple Inc. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
##

"""
Calendar user address normalization and principal resolution.
"""

__all__ = [
    "PrincipalResolver",
    "normalizeCUAddr",
    "normalizedAddresses",
]

from twisted.internet.defer import inlineCallbacks
from twisted.logger import Logger

log = Logger()


def normalizeCUAddr(addr):
    """
    Normalize a cuaddr string for comparison: lower()ing it, removing a
    leading mailto: scheme, and removing trailing slash if it's a URL.
    @param addr: a cuaddr string to normalize
    @return: normalized string
    """
    addr = addr.strip().lower()
    if addr.startswith("mailto:"):
        return addr[len("mailto:"):]
    if (addr.startswith("/") or
        addr.startswith("http:") or
        addr.startswith("https:")):
        return addr.rstrip("/")
    else:
        return addr



def normalizedAddresses(principal):
    """
    The set of normalized calendar user addresses of a principal.
    """
    return set([normalizeCUAddr(address) for address in principal.calendarUserAddresses])



class PrincipalResolver(object):
    """
    Maps calendar user addresses to principals for the lifetime of one
    scheduling request.
    """

    def __init__(self, directory):
        """
        @param directory: the principal directory to search.
        @type directory: L{IPrincipalDirectory}
        """
        self.directory = directory
        self._cache = {}


    @inlineCallbacks
    def resolve(self, address):
        """
        Find the principal owning C{address}. When the directory offers
        several candidates the first one, in directory order, whose addresses
        contain C{address} wins.

        @return: a L{Deferred} firing with an L{IPrincipal} or C{None}.
        """
        key = normalizeCUAddr(address)
        if key in self._cache:
            return self._cache[key]

        candidates = yield self.directory.principalsWithCalendarUserAddress(address)
        result = None
        for principal in candidates:
            if key in normalizedAddresses(principal):
                result = principal
                break

        log.debug(
            "Resolved calendar user address {address} to {principal}",
            address=address, principal=(result.principalURL if result is not None else None),
        )
        self._cache[key] = result
        return result
