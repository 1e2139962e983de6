#!/usr/bin/env python
##
# Copyright (c) 2006-2017 Apple Inc. All rights reserved.
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

from os.path import dirname, join as joinpath
from setuptools import setup, find_packages as setuptools_find_packages

import os


base_version = "1.0"
base_project = "txfreebusy"


#
# Utilities
#

def find_packages():
    modules = []

    def is_package(path):
        return (
            os.path.isdir(path) and
            os.path.isfile(os.path.join(path, "__init__.py"))
        )

    for pkg in filter(is_package, os.listdir(".")):
        modules.extend([pkg, ] + [
            "{}.{}".format(pkg, subpkg)
            for subpkg in setuptools_find_packages(pkg)
        ])
    return modules



#
# Options
#

project_name = "txfreebusy"

description = "CalDAV scheduling free busy engine for Twisted"
with open(joinpath(dirname(__file__), "README.rst")) as f:
    long_description = f.read()

classifiers = [
    "Development Status :: 4 - Beta",
    "Framework :: Twisted",
    "Intended Audience :: Developers",
    "License :: OSI Approved :: Apache Software License",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Office/Business :: Groupware",
    "Topic :: Office/Business :: Scheduling",
]

license = "Apache License, Version 2.0"

platforms = ["all"]



#
# Dependencies
#

setup_requirements = []

install_requirements = [
    # Core frameworks
    "zope.interface",
    "Twisted>=18.7.0",
    "constantly",

    # Calendar
    "icalendar>=5.0",
    "python-dateutil",
    "pytz",
]



#
# Run setup
#

def doSetup():
    setup(
        name=project_name,
        version=base_version,
        description=description,
        long_description=long_description,
        classifiers=classifiers,
        license=license,
        platforms=platforms,
        packages=find_packages(),
        python_requires=">=3.8",
        setup_requires=setup_requirements,
        install_requires=install_requirements,
    )



#
# Main
#

if __name__ == "__main__":
    doSetup()
