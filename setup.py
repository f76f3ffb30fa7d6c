from setuptools import setup, find_packages

setup(
    name='textvid',
    version='1.0.0',
    packages=find_packages(exclude=('tests', 'tests.*')),
    include_package_data=True,
    python_requires='>=3.12',
    install_requires=[
        'colored>=2.2.3',
        'halo>=0.0.31',
        'numpy>=1.26.2',
        'ffmpeg-python>=0.2.0',
        'soundfile>=0.12.1',
        'requests>=2.31.0',
        'Pillow>=10.1.0',
    ],
    extras_require={
        'test': ['pytest>=7.4'],
    },
    entry_points='''
        [console_scripts]
        textvid=textvid.__main__:main
    ''',
    license='MIT',
    keywords='text message video generator tts ffmpeg',
    description='Renders scripted text-message conversations into narrated videos',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
)
