from setuptools import setup, find_packages

setup(
    name='IHSetSheetFlow',
    version='0.1.0',
    packages=find_packages(exclude=['IHSetSheetFlow.tests']),
    include_package_data=True,
    install_requires=[
        'numpy',
        'scipy',
        'pandas',
        'xarray',
        'matplotlib'
    ],
    extras_require={
        'test': ['pytest'],
    },
    description='IH-SET oscillatory boundary layer and sheet flow model',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Science/Research',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
    ],
    python_requires='>=3.10',
)
