"""
World's fairs visitor analysis.

Stages (each in its own module):
  data         -> load + clean the fairs table
  describe     -> grouped sums, Pearson correlations
  regression   -> OLS fits
  diagnostics  -> influence, normality, RESET, Breusch-Pagan, VIF, HC3
  compare      -> AIC ranking
  report       -> JSON / Markdown / charts
"""
