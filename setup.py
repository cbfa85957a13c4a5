#!/usr/bin/env python3
"""
Setup script for imsync
"""

from setuptools import setup, find_packages
import os
import sys

# Импортируем версию
sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), 'imsync'))
from __version__ import __version__

# Читаем README для long_description
def read_file(filename):
    with open(os.path.join(os.path.dirname(__file__), filename), encoding='utf-8') as f:
        return f.read()

setup(
    name='imsync',
    version=__version__,
    description='Keeps an editor input method in step with the desktop keyboard layout switcher',
    long_description=read_file('README.md'),
    long_description_content_type='text/markdown',
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.8',
    install_requires=[
        'dbus-python',   # Подписка на сигналы session bus, асинхронные вызовы сброса
        'PyGObject',     # GLib main loop для доставки сигналов
        'python-xlib',   # _NET_ACTIVE_WINDOW для определения фокуса на X11
    ],
    extras_require={
        'dev': [
            'pytest>=7.0',
            'pytest-cov',
            'pytest-timeout',
        ],
    },
    entry_points={
        'console_scripts': [
            'imsync=imsync.cli:main',
        ],
    },
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: End Users/Desktop',
        'Topic :: Utilities',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Programming Language :: Python :: 3.13',
        'Operating System :: POSIX :: Linux',
        'Topic :: Desktop Environment',
    ],
)
