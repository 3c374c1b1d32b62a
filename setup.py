from setuptools import setup
README = open('README.md', 'r').read()

setup(
      name='carapace',
      version='0.1.0',
      packages=['carapace', 'carapace.stun'],
      provides=['carapace'],
      install_requires=['Twisted'],
      python_requires='>=3.7',
      entry_points={
          'console_scripts': ['carapace-stun = carapace.main:main',
                              'carapace-bench = carapace.bench:main'],
          },

      license='MIT',

      description="Stateless STUN Binding server",
      classifiers=[
                   'Programming Language :: Python :: 3',
                   'Framework :: Twisted',
                   'Intended Audience :: Developers',
                   'Intended Audience :: Information Technology',
                   'Intended Audience :: System Administrators',
                   'License :: OSI Approved :: MIT License',
                   'Operating System :: OS Independent',
                   'Topic :: Internet',
                   'Topic :: System :: Networking',
                   ],
      long_description=README,
      long_description_content_type='text/markdown',
      )
