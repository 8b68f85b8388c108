import os
from setuptools import setup, find_packages


def src(pth):
    return os.path.join(os.path.dirname(__file__), pth)


# Project description
descr = 'Python library for distributed dense linear algebra with MPI'

# Setup
setup(
    name='distmat_mpi',
    description=descr,
    long_description=open(src('README.md')).read(),
    long_description_content_type='text/markdown',
    keywords=['algebra',
              'distributed linear algebra',
              'element-cyclic distributions'],
    classifiers=[
        'Development Status :: 1 - Planning',
        'Intended Audience :: Developers',
        'Intended Audience :: Science/Research',
        'License :: OSI Approved :: GNU Lesser General Public License v2 or later (LGPLv2+)',
        'Natural Language :: English',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Topic :: Scientific/Engineering :: Mathematics'
    ],
    install_requires=['numpy >= 1.15.0', 'scipy >= 1.4.0', 'pylops >= 2.0',
                      'mpi4py', 'matplotlib'],
    extras_require={'test': ['pytest', 'pytest-mpi']},
    packages=find_packages(exclude=['tests', 'examples']),
    use_scm_version=dict(root='.',
                         relative_to=__file__,
                         write_to='distmat_mpi/version.py',
                         fallback_version='0.1.0'),
    setup_requires=['setuptools_scm'],
    zip_safe=True)
