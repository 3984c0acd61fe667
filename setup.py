"""
Setup script for exprmath package.
"""

from setuptools import setup, find_packages

setup(
    name="exprmath",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        # Core numerical dependencies
        "numpy>=1.20.0",
        "pandas>=1.3.0",
        "scipy>=1.7.0",
        "scikit-learn>=1.0.0",
        
        # Utilities
        "pyyaml>=6.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=6.0.0",
        ],
    },
    entry_points={
        'console_scripts': [
            'exprmath=exprmath.__main__:main',
        ],
    },
    description="PCA, hierarchical clustering and k-means for gene-expression matrices",
    keywords="gene expression, pca, clustering, k-means, dendrogram",
    python_requires=">=3.8",
)
