"""Setup script for excel_smart_matcher package."""

from setuptools import setup, find_packages
import os

# Read version from _version.py
version_file = os.path.join('excel_smart_matcher', '_version.py')
version_info = {}
with open(version_file) as f:
    exec(f.read(), version_info)

# Read README for long description
readme_file = 'README.md'
long_description = ''
if os.path.exists(readme_file):
    with open(readme_file, 'r', encoding='utf-8') as f:
        long_description = f.read()

setup(
    name='excel_smart_matcher',
    version=version_info['__version__'],
    author=version_info['__author__'],
    author_email=version_info['__email__'],
    description=version_info['__description__'],
    long_description=long_description,
    long_description_content_type='text/markdown',
    packages=find_packages(include=['excel_smart_matcher', 'excel_smart_matcher.*']),
    python_requires='>=3.9',
    install_requires=[
        'pandas>=1.3.0',
        'openpyxl>=3.0.0',
        'PyYAML>=5.4.0',
        'rapidfuzz>=2.0.0',
    ],
    extras_require={
        'dev': [
            'pytest>=6.0.0',
            'pytest-cov>=2.0.0',
            'black>=20.0.0',
            'flake8>=3.8.0',
            'mypy>=0.800',
        ],
    },
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
    ],
)
