# type: ignore
"""pdns_exporter setup.py for setuptools.

pdns_exporter reads statistics from PowerDNS control sockets and exposes them to Prometheus.
"""
import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name="pdns_exporter",
    version="0.1.0.dev0",
    description="pdns_exporter is a Prometheus exporter for the PowerDNS authoritative server and recursor control sockets.",  # noqa: E501
    license="BSD License",
    long_description=long_description,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=["pdns_exporter"],
    entry_points={"console_scripts": ["pdns_exporter = pdns_exporter.entrypoint:main"]},
    classifiers=[
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "License :: OSI Approved :: BSD License",
        "Operating System :: POSIX",
    ],
    python_requires=">=3.10",
    install_requires=["prometheus_client", "PyYAML"],
    extras_require={"test": ["pytest", "pytest-mock", "requests"]},
    include_package_data=True,
)
