from setuptools import setup, find_packages

setup(
    name='acstorbench',
    url='https://github.com/azure-container-storage/acstorbench',
    version='0.1.0',
    license='Apache 2.0',
    description='AKS + Azure Container Storage provisioning, fio and pgbench '
                'benchmarks, and stale resource cleanup.',
    packages=find_packages(exclude=['tests', 'tests.*']),
    package_data={'acstorbench': ['data/*.j2']},
    python_requires='>=3.8',
    install_requires=['absl-py',
                      'jinja2>=2.7',
                      'PyYAML',
                      'colorlog',
                      'questionary'],
    extras_require={'test': ['pytest']},
    entry_points={
        'console_scripts': [
            'acstorbench=acstorbench.automate:main',
            'acstorbench-nuke=acstorbench.nuke:main',
            'acstorbench-postinstall=acstorbench.postinstall:main',
            'acstorbench-quickstart=acstorbench.quickstart:main',
        ],
    })
