from setuptools import setup
from pathlib import Path

root_dir = Path(__file__).parent # gcsaft root directory
readme = (root_dir / 'README.md').read_text()

setup(name='gcsaft'
	,version='0.1.0'
	,description='Heterosegmented group contribution PC-SAFT for bulk phases and classical DFT'
	,long_description=readme
	,long_description_content_type='text/markdown'
	,packages=['gcsaft']
	,python_requires='>=3.9'
	,install_requires=['numpy>=1.24',
	                   'scipy>=1.10',
	                   'jax>=0.4.20',
	                   'jaxlib>=0.4.20']
	,extras_require={'test': ['pytest>=7']}
	)
