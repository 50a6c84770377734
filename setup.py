from setuptools import setup, find_packages
from codecs import open
import os

here = os.path.abspath(os.path.dirname(__file__))
package_name = 'acebasis'
package_description = ('Permutation and rotation invariant bases of atomic '
                       'environments (atomic cluster expansion)')

# Get the long description from the README file
with open(os.path.join(here, 'README.md'), encoding='utf-8') as fp:
    long_description = fp.read()

# Get version number from the VERSION file
with open(os.path.join(here, 'src', package_name, 'VERSION')) as fp:
    version = fp.read().strip()

setup(
    name=package_name,
    version=version,
    description=package_description,
    long_description=long_description,
    long_description_content_type='text/markdown',
    license='MPL',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Science/Research',
        'Topic :: Scientific/Engineering :: Physics',
        'Topic :: Scientific/Engineering :: Chemistry',
        'License :: OSI Approved :: Mozilla Public License 2.0 (MPL 2.0)',
        'Programming Language :: Python :: 3'
    ],
    keywords=['materials science', 'machine learning',
              'atomic cluster expansion'],
    package_dir={'': 'src'},
    packages=find_packages('src'),
    package_data={package_name: ['VERSION']},
    scripts=[os.path.join("scripts", "acebasis")],
    python_requires='>=3.8',
    install_requires=['numpy>=1.20.1',
                      'scipy>=1.6.2',
                      'sympy>=1.9',
                      'pandas>=1.2.4',
                      'tables>=3.6.1'],
    extras_require={
        'test': ['pytest>=7.0'],
    }
)
