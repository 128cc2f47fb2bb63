# -- Numerical Constants for Point Set Registration -- #

'''
Default numerical parameters for the expectation-based point set
metric and the gradient descent optimizer.

Values follow the conventions of the ITKv4 registration framework
that the metric and optimizer are modeled on.

References:
-----------
Avants et al. (2014) -- The Insight ToolKit image registration framework
Jian & Vemuri (2011) -- Robust point set registration using Gaussian
    mixture models

Sean Bowman [10/19/2026]
'''

#--------------------------------------------------------------------#
# -- Metric Parameters -- #
#--------------------------------------------------------------------#

# Gaussian kernel bandwidth sigma [same units as the points]
pointSetSigma: float = 1.0

# Number of moving neighbors blended into each fixed point's expectation
evaluationKNeighborhood: int = 50

# Neighbor index implementation: 'kdTree' or 'bruteForce'
neighborIndexType: str = 'kdTree'

# Worker threads for one metric evaluation (1 = serial)
numberOfWorkers: int = 1

#--------------------------------------------------------------------#
# -- Optimizer Parameters -- #
#--------------------------------------------------------------------#

# Iteration budget
numberOfIterations: int = 100

# Gradient descent step multiplier
learningRate: float = 1.0

# Convergence threshold on the windowed mean of the scaled derivative
# magnitude. Zero disables the early stop.
minimumConvergenceValue: float = 1e-8

# Number of recent iterations averaged by the convergence test
convergenceWindowSize: int = 50

# Iterations between progress lines when verbose
printInterval: int = 500

#--------------------------------------------------------------------#
# -- Scales Estimation -- #
#--------------------------------------------------------------------#

# Parameter perturbation used to measure point shifts
smallParameterVariation: float = 0.01

# Maximum number of sample points used by the scales estimators
maxScaleSamples: int = 1000

#--------------------------------------------------------------------#
# -- Verification -- #
#--------------------------------------------------------------------#

# Per-coordinate residual tolerance between matched point pairs
residualTolerance: float = 1e-4
