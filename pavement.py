"""Developer tasks for aheg. Run with: paver <task>"""

import os.path
import re

from paver.tasks import task
from paver.easy import sh


def _package_version():
    with open(os.path.join("aheg", "__init__.py")) as init_file:
        return re.findall(r"VERSION\s*=\s*['\"](.*)['\"]", init_file.read())[0]


def _banner(title):
    print("\n== %s ==\n" % title)


@task
def sdist(quiet=True):
    """ Builds the aheg source distribution. """
    _banner("Source distribution %s" % _package_version())
    sh('python setup.py sdist', capture=quiet)


@task
def test(quiet=False):
    """ Runs the module tests and docstring examples under coverage. """
    _banner("Tests")
    sh('pytest --cov=aheg --cov-report=term-missing', capture=quiet)


@task
def lint(quiet=False):
    """ Runs pylint over the library. """
    _banner("Lint")
    sh('pylint aheg', capture=quiet)


@task
def tag(quiet=False):
    """ Tags the current commit with the package version. """
    v = _package_version()
    _banner("Tag v%s" % v)
    sh('git tag -a v%s -m "aheg v%s"' % (v, v), capture=quiet)


@task
def wc(quiet=False):
    """ Counts lines of library and build code. """
    _banner("Line counts")
    sh('wc -l aheg/*.py setup.py pavement.py conftest.py', capture=quiet)
