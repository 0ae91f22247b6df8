from setuptools import setup, find_packages

setup(
    name='rdf-web-store',
    version='0.1.0',
    description='Quad store over named graphs published on the web',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    packages=find_packages(include=["rdfwebstore", "rdfwebstore.*"]),
    license='Apache License 2.0',
    install_requires=[
        "rdflib>=7.0.0",
        "httpx>=0.24",
        "PyYAML>=6.0",
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3.11",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
    ],
    python_requires='>=3.10',
)
