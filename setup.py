"""
Setup script for DataBar.

Usage:
    pip install -e .[test]      # development install
    python setup.py py2app      # build DataBar.app

The built app will be in the 'dist' folder.
"""
import sys

from setuptools import setup

APP = ['data_bar.py']
DATA_FILES = []

OPTIONS = {
    'argv_emulation': False,
    'plist': {
        'CFBundleName': 'DataBar',
        'CFBundleDisplayName': 'DataBar',
        'CFBundleIdentifier': 'com.databar.app',
        'CFBundleVersion': '2.0.0',
        'CFBundleShortVersionString': '2.0.0',
        'LSMinimumSystemVersion': '10.14.0',
        'LSUIElement': True,  # Hide dock icon (menu bar app)
        'NSHighResolutionCapable': True,
    },
    'packages': [
        'analytics',
        'storage',
        'config',
        'app',
        'google.auth',
        'google.oauth2',
    ],
    'includes': [
        'rumps',
        'psutil',
        'requests',
        'PIL',
        'PIL.Image',
        'PIL.ImageDraw',
        'objc',
        'Foundation',
        'AppKit',
    ],
    'excludes': [
        'tkinter',
        'pytest',
        'coverage',
        'pip',
    ],
    'site_packages': True,
}

INSTALL_REQUIRES = [
    'google-auth>=2.20',
    'requests>=2.28',
    'psutil>=5.9',
    'Pillow>=9.0',
    'rumps>=0.4; sys_platform == "darwin"',
    'pyobjc-framework-Cocoa>=9.0; sys_platform == "darwin"',
]

py2app_kwargs = {}
if 'py2app' in sys.argv:
    py2app_kwargs = dict(
        app=APP,
        data_files=DATA_FILES,
        options={'py2app': OPTIONS},
        setup_requires=['py2app'],
    )

setup(
    name='DataBar',
    version='2.0.0',
    description='Google Analytics real-time active users in the macOS menu bar',
    python_requires='>=3.9',
    packages=['analytics', 'app', 'app.views', 'config', 'storage'],
    py_modules=['data_bar'],
    install_requires=INSTALL_REQUIRES,
    extras_require={'test': ['pytest>=7.0']},
    entry_points={'console_scripts': ['databar = data_bar:main']},
    **py2app_kwargs,
)
