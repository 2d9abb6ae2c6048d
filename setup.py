from setuptools import setup

setup(
    name='liftchain',
    version='0.1.0',
    description='Genome coordinate liftover through UCSC chain files',
    install_requires=['pandas', 'numpy'],
    extras_require={
        'test': ['pytest', 'tqdm', 'rich'],
        'progress': ['tqdm', 'rich'],
    },
    packages=['liftchain'],
    python_requires='>=3.10',
    zip_safe=False
)
