#!/usr/bin/env python

from setuptools import setup

import aheg

setup(name='aheg',
      version=aheg.VERSION,
      description='Additively homomorphic ElGamal encryption over elliptic curves',
      long_description="""An additively homomorphic ElGamal scheme over the prime order elliptic curve groups of petlib, with validated fixed-width encodings of keys and ciphertexts.""",
      packages=['aheg'],
      license="2-clause BSD",
      python_requires=">=3.6",

      install_requires=[
            "petlib >= 0.0.45",
            "msgpack >= 1.0.0",
            "pytest >= 2.5.0",
      ],
      extras_require={
            "test": [
                  "pytest >= 2.5.0",
                  "pytest-cov >= 1.8.1",
                  "paver >= 1.2.3",
            ],
      },
      zip_safe=False,
)
