import os
from setuptools import setup, find_packages

def src(pth):
    return os.path.join(os.path.dirname(__file__), pth)

# Project description
descr = """
        Python library for frequency-domain least-squares reverse-time migration
        with a CPML Helmholtz solver and a Gauss-Newton pseudo-Hessian update.
        """

# Version
version = {}
with open(src('pylsrtm/version.py')) as f:
    exec(f.read(), version)

# Setup
setup(
    name='pylsrtm',
    version=version['version'],
    description=descr,
    long_description=open(src('README.md')).read(),
    long_description_content_type='text/markdown',
    keywords=['geophysics',
              'seismic imaging',
              'least-squares migration',
              'helmholtz'],
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'Intended Audience :: Science/Research',
        'License :: OSI Approved :: GNU Lesser General Public License v2 or later (LGPLv2+)',
        'Natural Language :: English',
        'Programming Language :: Python :: 3',
        'Topic :: Scientific/Engineering :: Physics'
    ],
    python_requires='>=3.8',
    install_requires=['numpy >= 1.15.0', 'scipy >= 1.4.0'],
    extras_require={'testing': ['pytest']},
    packages=find_packages(exclude=['pytests']),
    zip_safe=True)
