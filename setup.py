from __future__ import annotations

from setuptools import find_packages, setup  # type: ignore


setup(
    name="heatfield",
    version="0.1.0",
    description="Heatmap aggregation, palette compositing and temporal animation with an HTTP API",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_packages("src"),
    install_requires=[
        "numpy>=1.24",
        "fastapi>=0.110",
        "uvicorn>=0.27",
        "httpx>=0.27",
    ],
    extras_require={
        "image": ["opencv-python>=4.8", "Pillow>=10.0"],
        "test": ["pytest>=7.0", "httpx>=0.27", "Pillow>=10.0"],
    },
    entry_points={
        "console_scripts": ["heatfield=heatfield.__main__:main"],
    },
)
